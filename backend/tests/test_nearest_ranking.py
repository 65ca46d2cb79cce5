"""
Tests for nearest-N candidate ranking.
"""
import pytest

from models import Observer
from services.nearest_ranking import NearestRanker, rank_nearest
from services.position_computer import PositionComputer


class TestNearestRanker:
    """Test the bounded max-heap."""

    def test_keeps_closer_candidate(self):
        ranker = NearestRanker(1)
        ranker.offer(100000.0, 1, 'A')
        ranker.offer(5000000.0, 2, 'B')
        assert ranker.results() == ['A']

    def test_closer_candidate_evicts_farther(self):
        ranker = NearestRanker(1)
        assert ranker.offer(5000000.0, 2, 'B')
        assert ranker.offer(100000.0, 1, 'A')
        assert ranker.results() == ['A']
        assert ranker.max_distance == 100000.0

    def test_farther_candidate_rejected_at_capacity(self):
        ranker = NearestRanker(2)
        ranker.offer(10.0, 1, 'a')
        ranker.offer(20.0, 2, 'b')
        assert not ranker.offer(30.0, 3, 'c')
        assert len(ranker) == 2

    def test_retains_smallest_in_ascending_order(self):
        distances = [70.0, 10.0, 90.0, 40.0, 20.0, 80.0, 30.0, 60.0, 50.0, 0.5]
        ranker = NearestRanker(3)
        for catalog_id, distance in enumerate(distances, start=1):
            ranker.offer(distance, catalog_id, catalog_id)

        assert [distance for distance, _item in ranker.ranked()] == [0.5, 10.0, 20.0]
        assert ranker.results() == [10, 2, 5]

    def test_below_capacity_accepts_everything(self):
        ranker = NearestRanker(5)
        for catalog_id in range(3):
            assert ranker.offer(1000.0 * catalog_id, catalog_id, catalog_id)
        assert ranker.results() == [0, 1, 2]

    @pytest.mark.parametrize('order', [(5, 7), (7, 5)])
    def test_equal_distance_prefers_lower_catalog_id(self, order):
        ranker = NearestRanker(1)
        for catalog_id in order:
            ranker.offer(250.0, catalog_id, catalog_id)
        assert ranker.results() == [5]

    def test_zero_capacity_rejects(self):
        ranker = NearestRanker(0)
        assert not ranker.offer(1.0, 1, 'a')
        assert ranker.results() == []
        assert ranker.max_distance is None

    def test_negative_capacity(self):
        with pytest.raises(ValueError):
            NearestRanker(-1)


class TestRankNearest:
    """Test ranking element sets by their propagated position."""

    def test_closest_element_sets_first(self, make_element_set, at_time):
        computer = PositionComputer()
        element_sets = [make_element_set(catalog_id, mean_anomaly=ma)
                        for catalog_id, ma in ((10, 0.0), (20, 60.0), (30, 120.0), (40, 180.0))]
        target = computer.compute([element_sets[1]], at_time=at_time)[0]
        observer = Observer(target.latitude_deg, target.longitude_deg)

        nearest = rank_nearest(element_sets, observer, 2, at_time=at_time, computer=computer)

        assert len(nearest) == 2
        assert nearest[0].catalog_id == 20

    def test_unpropagatable_sets_left_out(self, make_element_set, at_time):
        good = make_element_set(10)
        bad = make_element_set(20)
        bad = type(bad)(catalog_id=20, name=bad.name, line1=bad.line1[:30], line2=bad.line2)

        nearest = rank_nearest([bad, good], Observer(0.0, 0.0), 5, at_time=at_time)

        assert [element_set.catalog_id for element_set in nearest] == [10]
