"""
Nearest-N ranking of candidates by distance from an observer.

Used while ingesting a catalog: the upstream pool is usually larger than the
working set, and only the closest objects are eligible for selection.
"""
import heapq
import itertools
from datetime import datetime
from typing import Any, List, Optional, Sequence, Tuple

from logging_config import get_logger
from models import ElementSet, Observer
from services.position_computer import PositionComputer, position_computer

logger = get_logger(__name__)


class NearestRanker:
    """
    Bounded max-heap keeping the `capacity` closest candidates.

    Below capacity every candidate is accepted. At capacity a candidate is
    accepted only if it is closer than the farthest retained one, which it
    then evicts.

    Candidates are ordered by (distance, catalog_id): on equal distance the
    lower catalog id counts as closer. This keeps results deterministic
    whatever the offer order.
    """

    def __init__(self, capacity: int):
        if capacity < 0:
            raise ValueError(f'capacity must not be negative, got {capacity}')
        self.capacity = capacity
        # Entries are (-distance, -catalog_id, seq, item); heap[0] is the farthest
        self._heap = []
        self._counter = itertools.count()

    def __len__(self):
        return len(self._heap)

    @property
    def max_distance(self) -> Optional[float]:
        """Distance of the farthest retained candidate."""
        if not self._heap:
            return None
        return -self._heap[0][0]

    def offer(self, distance: float, catalog_id: int, item: Any) -> bool:
        """
        Offer a candidate.

        Returns:
            True if the candidate is retained
        """
        if self.capacity == 0:
            return False

        entry = (-distance, -catalog_id, next(self._counter), item)
        if len(self._heap) < self.capacity:
            heapq.heappush(self._heap, entry)
            return True

        farthest_distance = -self._heap[0][0]
        farthest_id = -self._heap[0][1]
        if (distance, catalog_id) < (farthest_distance, farthest_id):
            heapq.heapreplace(self._heap, entry)
            return True
        return False

    def ranked(self) -> List[Tuple[float, Any]]:
        """Retained (distance, item) pairs, closest first."""
        ordered = sorted(self._heap, key=lambda entry: (-entry[0], -entry[1], entry[2]))
        return [(-entry[0], entry[3]) for entry in ordered]

    def results(self) -> List[Any]:
        """Retained items, closest first."""
        return [item for _distance, item in self.ranked()]


def rank_nearest(
    element_sets: Sequence[ElementSet],
    observer: Observer,
    capacity: int,
    at_time: Optional[datetime] = None,
    computer: Optional[PositionComputer] = None
) -> List[ElementSet]:
    """
    Select the `capacity` element sets closest to the observer at `at_time`.

    Element sets that cannot be propagated have no position and are left
    out of the pool.

    Returns:
        Element sets ordered by ascending distance
    """
    computer = computer or position_computer
    by_id = {element_set.catalog_id: element_set for element_set in element_sets}

    ranker = NearestRanker(capacity)
    for sample in computer.compute(list(by_id.values()), at_time=at_time, observer=observer):
        ranker.offer(sample.distance_meters, sample.catalog_id, by_id[sample.catalog_id])

    nearest = ranker.results()
    logger.info(
        f"[Ranking] Kept {len(nearest)} of {len(by_id)} candidates"
        + (f" within {ranker.max_distance / 1000:.0f} km" if nearest else "")
    )
    return nearest
