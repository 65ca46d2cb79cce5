"""
Tests for payload shape resolution and record parsing.
"""
import pytest

from services.element_extractor import ElementSetExtractor
from utils.exceptions import MalformedRecord


@pytest.fixture
def extractor():
    return ElementSetExtractor()


class TestResolveRecords:
    """Test locating the record list in the upstream payload."""

    @pytest.mark.parametrize('key', ['sats', 'satellites', 'data', 'results', 'items'])
    def test_wrapped_list_matches_bare_list(self, extractor, make_record, key):
        records = [make_record(25544), make_record(20580)]

        wrapped = extractor.extract({key: records})
        bare = extractor.extract(records)

        assert wrapped == bare
        assert [element_set.catalog_id for element_set in bare] == [25544, 20580]

    def test_first_listed_key_wins(self, extractor, make_record):
        payload = {'data': [make_record(20580)], 'sats': [make_record(25544)]}
        assert [s.catalog_id for s in extractor.extract(payload)] == [25544]

    def test_non_list_value_is_skipped(self, extractor, make_record):
        payload = {'sats': 'unavailable', 'data': [make_record(20580)]}
        assert [s.catalog_id for s in extractor.extract(payload)] == [20580]

    @pytest.mark.parametrize('payload', [None, 42, 'sats', {}, {'other': []}, {'sats': {'tle1': 'x'}}])
    def test_unrecognized_shapes_yield_nothing(self, extractor, payload):
        assert extractor.extract(payload) == []


class TestParseRecord:
    """Test validation of individual records."""

    def test_alternative_field_names(self, extractor, make_tle):
        line1, line2 = make_tle(43013)
        element_set = extractor.parse_record({'OBJECT_NAME': 'NOAA 20', 'line1': line1, 'line2': line2})

        assert element_set.catalog_id == 43013
        assert element_set.name == 'NOAA 20'
        assert element_set.line1 == line1

    def test_name_defaults_from_catalog_id(self, extractor, make_tle):
        line1, line2 = make_tle(25544)
        element_set = extractor.parse_record({'tle1': line1, 'tle2': line2})
        assert element_set.name == 'Satellite 25544'

    def test_lines_are_trimmed(self, extractor, make_tle):
        line1, line2 = make_tle(25544)
        element_set = extractor.parse_record({'tle1': f'  {line1}\n', 'tle2': f'{line2}  '})
        assert element_set.line1 == line1
        assert element_set.line2 == line2

    def test_country_and_launch(self, extractor, make_tle):
        line1, line2 = make_tle(25544)
        element_set = extractor.parse_record({
            'tle1': line1, 'tle2': line2, 'country': 'ISS', 'launch': '1998-11-20',
        })
        assert (element_set.country, element_set.launch) == ('ISS', '1998-11-20')

    @pytest.mark.parametrize('metadata, expected', [
        ({'cc': 'US', 'launch_date': '1990-04-24'}, ('US', '1990-04-24')),
        ({'country': '', 'cc': 'PRC', 'launchDate': '2011-09-29'}, ('PRC', '2011-09-29')),
        ({'launch': None, 'launch_date': 2017}, (None, '2017')),
        ({}, (None, None)),
    ])
    def test_metadata_fallback_keys(self, extractor, make_tle, metadata, expected):
        line1, line2 = make_tle(20580)
        element_set = extractor.parse_record(dict(metadata, tle1=line1, tle2=line2))
        assert (element_set.country, element_set.launch) == expected

    @pytest.mark.parametrize('record', [
        'not an object',
        {'tle2': '2 25544  51.6416'},
        {'tle1': '', 'tle2': '2 25544  51.6416'},
        {'tle1': 12345, 'tle2': '2 25544  51.6416'},
        {'tle1': '1 ABCDEU 98067A', 'tle2': '2 25544  51.6416'},
        {'tle1': '1 25544U 98067A', 'tle2': '   '},
    ])
    def test_malformed_records_raise(self, extractor, record):
        with pytest.raises(MalformedRecord):
            extractor.parse_record(record)


class TestExtract:
    """Test batch extraction."""

    def test_malformed_records_do_not_affect_others(self, extractor, make_record):
        payload = [
            make_record(25544),
            {'name': 'BROKEN', 'tle1': None, 'tle2': None},
            'garbage',
            {'tle1': '1 XXXXXU', 'tle2': '2 XXXXX'},
            make_record(20580),
        ]

        extracted = extractor.extract(payload)

        assert [s.catalog_id for s in extracted] == [25544, 20580]

    def test_duplicate_catalog_id_keeps_last_lines(self, extractor, make_record):
        first = make_record(25544, name='OLD')
        other = make_record(20580)
        last = make_record(25544, name='NEW', mean_anomaly=10.0)

        extracted = extractor.extract([first, other, last])

        assert [s.catalog_id for s in extracted] == [25544, 20580]
        assert extracted[0].name == 'NEW'
        assert extracted[0].line2 == last['tle2']
