"""
Data models for the Overhead Satellite Tracker.
"""
from .element_set import ElementSet, parse_catalog_id
from .selection import SelectionEntry
from .position import Observer, PositionSample

__all__ = ['ElementSet', 'parse_catalog_id', 'SelectionEntry', 'Observer', 'PositionSample']
