"""
Tracker service: ties the fetch, selection, propagation and caching steps
together.

Refresh path:  fetcher -> extractor -> nearest-N ranking -> selection
               reconcile -> snapshot rebuild
Query path:    position cache (recomputed from the selection when absent)
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from logging_config import get_logger
from models import Observer, PositionSample, SelectionEntry
from services.catalog_fetcher import ElementSetCatalogFetcher
from services.document_store import create_document_stores
from services.element_extractor import ElementSetExtractor
from services.nearest_ranking import rank_nearest
from services.position_cache import PositionCache
from services.position_computer import PositionComputer
from services.selection_store import SelectionStore
from utils.exceptions import NotFound, UpstreamUnavailable

logger = get_logger(__name__)


@dataclass
class RefreshResult:
    """Outcome of one refresh request."""
    selection: List[SelectionEntry] = field(default_factory=list)
    positions: List[PositionSample] = field(default_factory=list)
    available: int = 0
    rate_limited: bool = False

    def to_dict(self):
        return {
            'available': self.available,
            'rate_limited': self.rate_limited,
            'count': len(self.selection),
            'satellites': [entry.to_dict() for entry in self.selection],
            'positions': [sample.to_dict() for sample in self.positions],
        }


class TrackerService:
    """
    Entry point used by the HTTP layer and the scheduler.
    """

    def __init__(
        self,
        fetcher: ElementSetCatalogFetcher,
        store: SelectionStore,
        cache: PositionCache,
        extractor: Optional[ElementSetExtractor] = None,
        computer: Optional[PositionComputer] = None,
        nearest_pool_size: Optional[int] = None,
        overhead_threshold_m: float = 500000.0
    ):
        self.fetcher = fetcher
        self.store = store
        self.cache = cache
        self.extractor = extractor or ElementSetExtractor()
        self.computer = computer or cache.computer
        self.nearest_pool_size = nearest_pool_size or store.target_count
        self.overhead_threshold_m = overhead_threshold_m

    @classmethod
    def from_config(cls, app_config) -> 'TrackerService':
        """Build the service and its stores from a Flask config or dict."""
        selection_document, positions_document = create_document_stores(app_config)
        computer = PositionComputer()
        store = SelectionStore(selection_document, target_count=int(app_config.get('TARGET_COUNT', 50)))
        return cls(
            fetcher=ElementSetCatalogFetcher.from_config(app_config),
            store=store,
            cache=PositionCache(positions_document, computer=computer),
            computer=computer,
            nearest_pool_size=app_config.get('NEAREST_POOL_SIZE'),
            overhead_threshold_m=float(app_config.get('OVERHEAD_THRESHOLD_M', 500000.0)),
        )

    def refresh(self, observer: Observer, at_time: Optional[datetime] = None, force: bool = False) -> RefreshResult:
        """
        Pull the upstream catalog for an observer and update the working set.

        Raises:
            UpstreamUnavailable: if the upstream call fails, or it yields no
                usable (or, for a large catalog, no propagatable) element
                sets while no selection exists yet
        """
        payload = self.fetcher.fetch(observer, force=force)
        if payload is None:
            logger.info("[Tracker] Refresh skipped (rate limited), serving current selection")
            return RefreshResult(selection=self.store.load() or [], rate_limited=True)

        available = self.extractor.extract(payload)
        if not available:
            current = self.store.load()
            if current is None:
                raise UpstreamUnavailable('Upstream catalog returned no usable element sets')
            logger.warning("[Tracker] Upstream returned no usable element sets, keeping current selection")
            return RefreshResult(selection=current, available=0)

        if len(available) > self.nearest_pool_size:
            candidates = rank_nearest(
                available, observer, self.nearest_pool_size,
                at_time=at_time, computer=self.computer
            )
        else:
            candidates = available

        outcome = self.store.merge(available, candidates)
        selection = outcome.selection
        if not selection:
            # Only possible on first population: the selection never shrinks
            self.cache.invalidate()
            raise UpstreamUnavailable('No propagatable element sets in upstream catalog')

        if outcome.persisted:
            positions = self.cache.rebuild(self.store, at_time=at_time, entries=selection)
            positions = [sample.with_distance(observer) for sample in positions]
        else:
            # Not persisted: queries recompute from the stored selection
            self.cache.invalidate()
            positions = self.computer.compute(selection, at_time=at_time, observer=observer)

        logger.info(f"[Tracker] Refresh complete: {len(available)} available, {len(selection)} selected")
        return RefreshResult(selection=selection, positions=positions, available=len(available))

    def positions(
        self,
        observer: Optional[Observer],
        at_time: Optional[datetime] = None,
        sort_by_distance: bool = False,
        refresh: bool = False
    ) -> List[PositionSample]:
        """
        Current positions of the working set.

        Returns an empty list when no observer is given.

        Raises:
            NotFound: if there is no snapshot and no selection yet
            UpstreamUnavailable: if `refresh` was requested and failed
        """
        if observer is None:
            return []

        if refresh:
            self.refresh(observer, at_time=at_time)

        samples = self.cache.get(self.store, observer=observer, at_time=at_time)
        if sort_by_distance:
            samples = sorted(samples, key=lambda sample: (sample.distance_meters, sample.catalog_id))
        return samples

    def selection(self) -> List[SelectionEntry]:
        """
        The persisted working set.

        Raises:
            NotFound: if no selection exists yet
        """
        entries = self.store.load()
        if entries is None:
            raise NotFound()
        return entries

    def overhead_count(self, samples: List[PositionSample]) -> int:
        """Number of samples within the overhead threshold of the observer."""
        return sum(1 for sample in samples if sample.is_overhead(self.overhead_threshold_m))
