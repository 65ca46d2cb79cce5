"""
Position cache: the persisted snapshot of the most recently computed positions.

There is no TTL. A snapshot is served until the refresh path rebuilds it
from a newly reconciled selection.
"""
from datetime import datetime
from typing import List, Optional

from logging_config import get_logger
from models import Observer, PositionSample
from services.document_store import DocumentStore
from services.position_computer import PositionComputer, position_computer
from services.selection_store import SelectionStore
from utils.exceptions import NotFound, PersistenceFailure

logger = get_logger(__name__)


class PositionCache:
    """
    Serves the position snapshot, recomputing it from the selection when it
    is absent or unreadable.
    """

    def __init__(self, document: DocumentStore, computer: Optional[PositionComputer] = None):
        self.document = document
        self.computer = computer or position_computer

    def get(
        self,
        store: SelectionStore,
        observer: Optional[Observer] = None,
        at_time: Optional[datetime] = None
    ) -> List[PositionSample]:
        """
        Return the current position set.

        Args:
            store: Selection to recompute from when there is no snapshot
            observer: If given, distances are attached to each sample
            at_time: Instant used when recomputing, default now

        Returns:
            Samples in index order

        Raises:
            NotFound: if neither a snapshot nor a selection exists
        """
        samples = self.load()
        if samples is None:
            entries = store.load()
            if entries is None:
                raise NotFound()
            samples = self._compute_and_persist(entries, at_time)

        if observer is not None:
            samples = [sample.with_distance(observer) for sample in samples]
        return samples

    def load(self) -> Optional[List[PositionSample]]:
        """
        Load the persisted snapshot.

        Returns:
            The samples, or None if the snapshot is absent or cannot be parsed
        """
        try:
            document = self.document.read()
        except PersistenceFailure as e:
            logger.warning(f"[PositionCache] Unreadable snapshot, recomputing: {e}")
            return None

        if document is None:
            return None
        if not isinstance(document, list):
            logger.warning("[PositionCache] Snapshot is not a list, recomputing")
            return None

        try:
            samples = [PositionSample.from_snapshot_dict(item) for item in document]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"[PositionCache] Malformed snapshot record, recomputing: {e}")
            return None
        return sorted(samples, key=lambda sample: sample.index)

    def rebuild(
        self,
        store: SelectionStore,
        at_time: Optional[datetime] = None,
        entries=None
    ) -> List[PositionSample]:
        """
        Replace the snapshot with positions computed from the current selection.

        The old snapshot is dropped first so that a failed write cannot leave
        positions of a previous selection in place.

        Args:
            store: Selection store, loaded when `entries` is not given
            at_time: Instant to compute for, default now
            entries: Selection just returned by `reconcile`, which is
                authoritative even if persisting it failed

        Raises:
            NotFound: if there is no selection
        """
        self.invalidate()
        if entries is None:
            entries = store.load()
        if entries is None:
            raise NotFound()
        return self._compute_and_persist(entries, at_time)

    def invalidate(self) -> None:
        """Drop the snapshot (best-effort)."""
        try:
            self.document.delete()
        except PersistenceFailure as e:
            logger.error(f"[PositionCache] Could not invalidate snapshot: {e}")

    def _compute_and_persist(self, entries, at_time: Optional[datetime]) -> List[PositionSample]:
        samples = self.computer.compute(entries, at_time=at_time)
        try:
            self.document.write([sample.to_snapshot_dict() for sample in samples])
            logger.info(f"[PositionCache] Cached {len(samples)} positions")
        except PersistenceFailure as e:
            logger.error(f"[PositionCache] Could not persist snapshot, serving uncached: {e}")
        return samples
