"""
Shared fixtures for the tracker test suite.

Run with:
    pytest
"""
from datetime import datetime, timedelta, timezone

import pytest

from models import ElementSet
from services.document_store import FileDocumentStore
from services.selection_store import SelectionStore

# ISS element set; positions are computed shortly after its epoch
ISS_LINE1 = "1 25544U 98067A   23259.57580000  .00012022  00000-0  21844-3 0  9995"
ISS_LINE2 = "2 25544  51.6416 220.9944 0004263 122.0101 312.2755 15.49541986415598"
ISS_NAME = "ISS (ZARYA)"

AT_TIME = datetime(2023, 9, 16, 14, 0, 0, tzinfo=timezone.utc)


def _make_tle(catalog_id, mean_anomaly=None):
    """ISS-shaped element pair with another catalog id and optionally another mean anomaly."""
    line1 = ISS_LINE1[:2] + f'{catalog_id:05d}' + ISS_LINE1[7:]
    line2 = ISS_LINE2[:2] + f'{catalog_id:05d}' + ISS_LINE2[7:]
    if mean_anomaly is not None:
        line2 = line2[:43] + f'{mean_anomaly:8.4f}' + line2[51:]
    return line1, line2


@pytest.fixture
def at_time():
    return AT_TIME


@pytest.fixture
def make_tle():
    return _make_tle


@pytest.fixture
def make_element_set():
    def factory(catalog_id, name=None, mean_anomaly=None):
        line1, line2 = _make_tle(catalog_id, mean_anomaly)
        return ElementSet.from_lines(line1, line2, name=name or f'SAT-{catalog_id}')
    return factory


@pytest.fixture
def make_record():
    """Raw upstream record in the keeptrack field layout."""
    def factory(catalog_id, name=None, mean_anomaly=None):
        line1, line2 = _make_tle(catalog_id, mean_anomaly)
        return {'name': name or f'SAT-{catalog_id}', 'tle1': line1, 'tle2': line2}
    return factory


@pytest.fixture
def clock():
    """Deterministic clock advancing one minute per call."""
    class Clock:
        def __init__(self):
            self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

        def __call__(self):
            self.now += timedelta(minutes=1)
            return self.now

    return Clock()


@pytest.fixture
def selection_document(tmp_path):
    return FileDocumentStore(str(tmp_path / 'selected_satellites.json'))


@pytest.fixture
def positions_document(tmp_path):
    return FileDocumentStore(str(tmp_path / 'positions_cache.json'))


@pytest.fixture
def store_factory(selection_document, clock):
    def factory(target_count=50):
        return SelectionStore(selection_document, target_count=target_count, clock=clock)
    return factory
