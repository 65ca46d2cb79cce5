"""
Business logic services for the Overhead Satellite Tracker.

Services:
- catalog_fetcher: upstream catalog HTTP client
- element_extractor: payload normalization into element sets
- document_store: whole-document JSON persistence (file or Redis)
- selection_store: persisted working set of tracked satellites
- position_computer: SGP4 propagation and geodetic conversion
- nearest_ranking: nearest-N candidate selection
- position_cache: persisted position snapshot
- tracker_service: refresh and query orchestration
- scheduler_service: optional periodic refresh
"""

from .catalog_fetcher import ElementSetCatalogFetcher
from .element_extractor import ElementSetExtractor, element_extractor
from .document_store import DocumentStore, FileDocumentStore, RedisDocumentStore, create_document_stores
from .selection_store import SelectionStore
from .position_computer import PositionComputer, position_computer
from .nearest_ranking import NearestRanker, rank_nearest
from .position_cache import PositionCache
from .tracker_service import TrackerService, RefreshResult

__all__ = [
    # Fetch / extract
    'ElementSetCatalogFetcher',
    'ElementSetExtractor',
    'element_extractor',

    # Persistence
    'DocumentStore',
    'FileDocumentStore',
    'RedisDocumentStore',
    'create_document_stores',
    'SelectionStore',
    'PositionCache',

    # Propagation
    'PositionComputer',
    'position_computer',
    'NearestRanker',
    'rank_nearest',

    # Orchestration
    'TrackerService',
    'RefreshResult',
]
