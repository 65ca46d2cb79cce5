"""
Element set extraction.

Normalizes the upstream catalog payload into a uniform list of ElementSet.
The upstream source is not consistent about where it puts the satellite
list, so the payload shape is resolved here once and nowhere else.
"""
from typing import Any, Dict, List

from logging_config import get_logger
from models import ElementSet
from utils.exceptions import MalformedRecord

logger = get_logger(__name__)


class ElementSetExtractor:
    """
    Turns an upstream payload of unknown shape into validated element sets.
    """

    # Object keys that may hold the record list, in preference order
    LIST_KEYS = ('sats', 'satellites', 'data', 'results', 'items')

    # Record field names, in preference order
    LINE1_KEYS = ('tle1', 'line1', 'TLE_LINE1')
    LINE2_KEYS = ('tle2', 'line2', 'TLE_LINE2')
    NAME_KEYS = ('name', 'OBJECT_NAME', 'satname')
    COUNTRY_KEYS = ('country', 'cc')
    LAUNCH_KEYS = ('launch', 'launch_date', 'launchDate')

    def resolve_records(self, payload: Any) -> List[Any]:
        """
        Locate the record list in a payload.

        A list is used directly. For an object, the first key in LIST_KEYS
        whose value is a list wins. Anything else yields an empty list.
        """
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict):
            for key in self.LIST_KEYS:
                value = payload.get(key)
                if isinstance(value, list):
                    return value
        return []

    def parse_record(self, record: Any) -> ElementSet:
        """
        Parse one raw record.

        Raises:
            MalformedRecord: if the record is not an object, lacks a non-empty
                line 1 or line 2, or has no parsable catalog id
        """
        if not isinstance(record, dict):
            raise MalformedRecord(f'Record is not an object: {type(record).__name__}')
        line1 = self._first_string(record, self.LINE1_KEYS)
        line2 = self._first_string(record, self.LINE2_KEYS)
        name = self._first_string(record, self.NAME_KEYS)
        return ElementSet.from_lines(
            line1, line2, name=name,
            country=self._first_string(record, self.COUNTRY_KEYS),
            launch=self._first_string(record, self.LAUNCH_KEYS),
        )

    def extract(self, payload: Any) -> List[ElementSet]:
        """
        Extract all valid element sets from a payload.

        Malformed records are dropped without affecting the others. When the
        same catalog id appears more than once, the last occurrence's lines
        are kept at the position of the first occurrence.

        Returns:
            List of ElementSet in payload order
        """
        records = self.resolve_records(payload)
        by_id: Dict[int, ElementSet] = {}
        dropped = 0

        for position, record in enumerate(records):
            try:
                element_set = self.parse_record(record)
            except MalformedRecord as e:
                dropped += 1
                logger.debug(f"[Extractor] Dropping record {position}: {e}")
                continue
            by_id[element_set.catalog_id] = element_set

        if dropped:
            logger.info(f"[Extractor] Extracted {len(by_id)} element sets, dropped {dropped} malformed records")
        return list(by_id.values())

    @staticmethod
    def _first_string(record: Dict, keys) -> Any:
        """First value under `keys` that is a non-empty string, else the first present value."""
        fallback = None
        for key in keys:
            if key not in record:
                continue
            value = record[key]
            if isinstance(value, str) and value.strip():
                return value
            if fallback is None:
                fallback = value
        return fallback


# Singleton instance
element_extractor = ElementSetExtractor()
