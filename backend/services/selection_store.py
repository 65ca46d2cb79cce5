"""
Selection store: the persisted working set of tracked satellites.

The working set is append-only. It is populated once in ascending catalog
id order, then topped up toward TARGET_COUNT and refreshed in place as newer
element sets arrive. Entries are never removed, so the tracked set does not
jump between refreshes.
"""
from datetime import datetime, timezone
from threading import Lock
from typing import Iterable, List, NamedTuple, Optional

from logging_config import get_logger
from models import ElementSet, SelectionEntry
from services.document_store import DocumentStore
from utils.exceptions import PersistenceFailure

logger = get_logger(__name__)


class ReconcileOutcome(NamedTuple):
    """Result of one reconcile."""
    selection: List[SelectionEntry]
    persisted: bool
    initialized: bool


class SelectionStore:
    """
    Owns the persisted selection document.

    The document is the source of truth; nothing is held in process memory
    between calls. `reconcile` is serialized per store instance.
    """

    DEFAULT_TARGET_COUNT = 50

    def __init__(self, document: DocumentStore, target_count: int = DEFAULT_TARGET_COUNT, clock=None):
        if target_count < 1:
            raise ValueError(f'target_count must be positive, got {target_count}')
        self.document = document
        self.target_count = target_count
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = Lock()

    def load(self) -> Optional[List[SelectionEntry]]:
        """
        Load the persisted selection.

        Returns:
            The entries in index order, or None when no usable selection
            exists (absent, unreadable or malformed documents all count as
            empty)
        """
        try:
            document = self.document.read()
        except PersistenceFailure as e:
            logger.warning(f"[SelectionStore] Unreadable selection, treating as empty: {e}")
            return None

        if document is None:
            return None
        if not isinstance(document, list):
            logger.warning("[SelectionStore] Selection document is not a list, treating as empty")
            return None

        try:
            entries = [SelectionEntry.from_dict(item) for item in document]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"[SelectionStore] Malformed selection entry, treating as empty: {e}")
            return None

        if not entries:
            return None
        return sorted(entries, key=lambda entry: entry.index)

    def exists(self) -> bool:
        return self.load() is not None

    def reconcile(
        self,
        available: Iterable[ElementSet],
        candidates: Optional[Iterable[ElementSet]] = None
    ) -> List[SelectionEntry]:
        """Merge newly observed element sets into the working set. See `merge`."""
        return self.merge(available, candidates).selection

    def merge(
        self,
        available: Iterable[ElementSet],
        candidates: Optional[Iterable[ElementSet]] = None
    ) -> ReconcileOutcome:
        """
        Merge newly observed element sets into the working set.

        1. Without a persisted selection, the lowest catalog ids among
           `candidates` (up to target_count) become the selection, indexed
           from 1.
        2. Existing entries whose catalog id is in `available` get the latest
           lines and a new `updated_at`. Others are left as they are.
        3. Below target_count, unselected `candidates` are appended in
           ascending catalog id order with the next indexes.
        4. The result is persisted. A persistence failure is logged and the
           reconciled selection is still returned.

        Args:
            available: Every element set seen in this refresh, used for
                in-place refreshes
            candidates: Element sets eligible for insertion. Defaults to
                `available`.

        Returns:
            ReconcileOutcome with the reconciled selection in index order,
            whether it was persisted and whether it was newly initialized
        """
        available = list(available)
        candidates = available if candidates is None else list(candidates)

        with self._lock:
            now = self._clock()
            latest = {element_set.catalog_id: element_set for element_set in available}
            eligible = self._distinct_sorted(candidates)

            existing = self.load()
            if existing is None:
                selection = [
                    SelectionEntry.create(index, element_set, now)
                    for index, element_set in enumerate(eligible[:self.target_count], start=1)
                ]
                logger.info(f"[SelectionStore] Initialized selection with {len(selection)} satellites")
            else:
                selection = []
                refreshed = 0
                for entry in existing:
                    element_set = latest.get(entry.catalog_id)
                    if element_set is not None:
                        entry = entry.refreshed(element_set, now)
                        refreshed += 1
                    selection.append(entry)

                added = self._top_up(selection, eligible, now)
                logger.info(
                    f"[SelectionStore] Reconciled selection: {refreshed} refreshed, "
                    f"{added} added, {len(selection)} total"
                )

            persisted = self._persist(selection)
            return ReconcileOutcome(selection, persisted, existing is None)

    def _top_up(self, selection: List[SelectionEntry], eligible: List[ElementSet], now: datetime) -> int:
        """Append unselected candidates until the target size. Returns the number added."""
        selected_ids = {entry.catalog_id for entry in selection}
        next_index = max((entry.index for entry in selection), default=0) + 1
        added = 0
        for element_set in eligible:
            if len(selection) >= self.target_count:
                break
            if element_set.catalog_id in selected_ids:
                continue
            selection.append(SelectionEntry.create(next_index, element_set, now))
            selected_ids.add(element_set.catalog_id)
            next_index += 1
            added += 1
        return added

    def _persist(self, selection: List[SelectionEntry]) -> bool:
        try:
            self.document.write([entry.to_dict() for entry in selection])
            return True
        except PersistenceFailure as e:
            logger.error(f"[SelectionStore] Could not persist selection: {e}")
            return False

    @staticmethod
    def _distinct_sorted(element_sets: List[ElementSet]) -> List[ElementSet]:
        """Distinct by catalog id (last occurrence wins), ascending catalog id."""
        by_id = {element_set.catalog_id: element_set for element_set in element_sets}
        return [by_id[catalog_id] for catalog_id in sorted(by_id)]
