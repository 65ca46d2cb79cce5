"""
Tests for refresh and query orchestration.
"""
from unittest.mock import MagicMock

import pytest

from models import Observer
from services.position_cache import PositionCache
from services.position_computer import PositionComputer
from services.selection_store import SelectionStore
from services.tracker_service import TrackerService
from utils.exceptions import NotFound, PersistenceFailure, UpstreamUnavailable


@pytest.fixture
def fetcher():
    return MagicMock()


@pytest.fixture
def tracker_factory(fetcher, store_factory, positions_document):
    def factory(target_count=50, nearest_pool_size=None):
        computer = PositionComputer()
        return TrackerService(
            fetcher=fetcher,
            store=store_factory(target_count=target_count),
            cache=PositionCache(positions_document, computer=computer),
            computer=computer,
            nearest_pool_size=nearest_pool_size,
        )
    return factory


OBSERVER = Observer(40.7128, -74.006)


class TestRefresh:
    """Test the refresh path."""

    def test_first_refresh_builds_selection_and_snapshot(self, tracker_factory, fetcher, make_record,
                                                         positions_document, at_time):
        fetcher.fetch.return_value = {'sats': [make_record(25544), make_record(20580)]}
        tracker = tracker_factory()

        result = tracker.refresh(OBSERVER, at_time=at_time)

        assert result.available == 2
        assert not result.rate_limited
        assert [entry.catalog_id for entry in result.selection] == [20580, 25544]
        assert [sample.catalog_id for sample in result.positions] == [20580, 25544]
        assert all(sample.distance_meters is not None for sample in result.positions)
        assert len(positions_document.read()) == 2

    def test_rate_limited_serves_current_selection(self, tracker_factory, fetcher, make_record, at_time):
        tracker = tracker_factory()
        fetcher.fetch.return_value = [make_record(25544)]
        tracker.refresh(OBSERVER, at_time=at_time)

        fetcher.fetch.return_value = None
        result = tracker.refresh(OBSERVER, at_time=at_time)

        assert result.rate_limited
        assert [entry.catalog_id for entry in result.selection] == [25544]

    def test_upstream_failure_propagates(self, tracker_factory, fetcher):
        fetcher.fetch.side_effect = UpstreamUnavailable('timed out')
        with pytest.raises(UpstreamUnavailable):
            tracker_factory().refresh(OBSERVER)

    def test_no_usable_records_without_selection(self, tracker_factory, fetcher):
        fetcher.fetch.return_value = {'sats': [{'name': 'BROKEN'}]}
        with pytest.raises(UpstreamUnavailable):
            tracker_factory().refresh(OBSERVER)

    def test_no_usable_records_keeps_selection(self, tracker_factory, fetcher, make_record, at_time):
        tracker = tracker_factory()
        fetcher.fetch.return_value = [make_record(25544)]
        tracker.refresh(OBSERVER, at_time=at_time)

        fetcher.fetch.return_value = []
        result = tracker.refresh(OBSERVER, at_time=at_time)

        assert [entry.catalog_id for entry in result.selection] == [25544]
        assert result.available == 0

    def test_unpropagatable_catalog_fails_first_refresh(self, tracker_factory, fetcher, make_record,
                                                        positions_document, at_time):
        records = [make_record(catalog_id) for catalog_id in (1, 2, 3)]
        for record in records:
            record['tle1'] = record['tle1'][:68]
        fetcher.fetch.return_value = records
        tracker = tracker_factory(target_count=1)

        with pytest.raises(UpstreamUnavailable):
            tracker.refresh(Observer(0.0, 0.0), at_time=at_time)

        assert tracker.store.load() is None
        assert not positions_document.exists()

    def test_unpersisted_selection_does_not_replace_snapshot(self, fetcher, make_record, positions_document,
                                                             clock, at_time):
        positions_document.write([
            {'index': 1, 'catalogId': 99999, 'latitude': 0.0, 'longitude': 0.0, 'altitude': 0.0},
        ])
        selection_document = MagicMock()
        selection_document.read.return_value = None
        selection_document.write.side_effect = PersistenceFailure('disk full')
        fetcher.fetch.return_value = [make_record(25544)]
        tracker = TrackerService(
            fetcher=fetcher,
            store=SelectionStore(selection_document, clock=clock),
            cache=PositionCache(positions_document),
        )

        result = tracker.refresh(OBSERVER, at_time=at_time)

        assert [entry.catalog_id for entry in result.selection] == [25544]
        assert [sample.catalog_id for sample in result.positions] == [25544]
        assert result.positions[0].distance_meters is not None
        assert not positions_document.exists()

    def test_large_catalog_ranked_by_distance(self, tracker_factory, fetcher, make_record,
                                              make_element_set, at_time):
        records = [make_record(catalog_id, mean_anomaly=ma)
                   for catalog_id, ma in ((10, 0.0), (20, 90.0), (30, 180.0), (40, 270.0))]
        fetcher.fetch.return_value = records
        target = PositionComputer().compute([make_element_set(30, mean_anomaly=180.0)], at_time=at_time)[0]
        observer = Observer(target.latitude_deg, target.longitude_deg)

        result = tracker_factory(target_count=1).refresh(observer, at_time=at_time)

        assert [entry.catalog_id for entry in result.selection] == [30]
        assert result.available == 4

    def test_selection_growth_over_refreshes(self, fetcher, make_record, selection_document,
                                             positions_document, clock, at_time):
        fetcher.fetch.return_value = [make_record(43013), make_record(20580), make_record(25544)]

        def tracker(target_count):
            return TrackerService(
                fetcher=fetcher,
                store=SelectionStore(selection_document, target_count=target_count, clock=clock),
                cache=PositionCache(positions_document),
                nearest_pool_size=3,
            )

        first = tracker(2).refresh(OBSERVER, at_time=at_time)
        second = tracker(3).refresh(OBSERVER, at_time=at_time)

        assert [entry.catalog_id for entry in first.selection] == [20580, 25544]
        assert [(entry.index, entry.catalog_id) for entry in second.selection] == [
            (1, 20580), (2, 25544), (3, 43013)
        ]
        assert len(positions_document.read()) == 3

    def test_refresh_result_to_dict(self, tracker_factory, fetcher, make_record, at_time):
        fetcher.fetch.return_value = [make_record(25544)]
        data = tracker_factory().refresh(OBSERVER, at_time=at_time).to_dict()

        assert data['count'] == 1
        assert data['available'] == 1
        assert data['rate_limited'] is False
        assert data['satellites'][0]['catalogId'] == 25544
        assert set(data['positions'][0]) == {
            'index', 'catalogId', 'name', 'lat', 'lng', 'altitude', 'country', 'launch', 'distance'
        }


class TestQueries:
    """Test position and selection queries."""

    def test_positions_without_observer(self, tracker_factory):
        assert tracker_factory().positions(None) == []

    def test_positions_without_data(self, tracker_factory):
        with pytest.raises(NotFound):
            tracker_factory().positions(OBSERVER)

    def test_positions_sorted_by_distance(self, tracker_factory, fetcher, make_record, at_time):
        fetcher.fetch.return_value = [make_record(catalog_id, mean_anomaly=ma)
                                      for catalog_id, ma in ((1, 0.0), (2, 120.0), (3, 240.0))]
        tracker = tracker_factory()
        tracker.refresh(OBSERVER, at_time=at_time)

        samples = tracker.positions(OBSERVER, at_time=at_time, sort_by_distance=True)

        distances = [sample.distance_meters for sample in samples]
        assert len(samples) == 3
        assert distances == sorted(distances)

    def test_positions_with_refresh(self, tracker_factory, fetcher, make_record, at_time):
        fetcher.fetch.return_value = [make_record(25544)]

        samples = tracker_factory().positions(OBSERVER, at_time=at_time, refresh=True)

        assert [sample.catalog_id for sample in samples] == [25544]
        fetcher.fetch.assert_called_once()

    def test_selection_not_found(self, tracker_factory):
        with pytest.raises(NotFound):
            tracker_factory().selection()

    def test_overhead_count(self, tracker_factory, positions_document):
        positions_document.write([
            {'index': 1, 'catalogId': 1, 'latitude': 40.8, 'longitude': -74.0, 'altitude': 4e5},
            {'index': 2, 'catalogId': 2, 'latitude': -40.0, 'longitude': 100.0, 'altitude': 4e5},
        ])
        tracker = tracker_factory()

        samples = tracker.positions(OBSERVER)

        assert tracker.overhead_count(samples) == 1
