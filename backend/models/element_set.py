"""
Element set model: one two-line orbital element pair for a catalog object.
"""
import re
from dataclasses import dataclass
from typing import Optional

from utils.exceptions import MalformedRecord

# Catalog number: 5-digit field after the leading line number "1"
CATALOG_ID_PATTERN = re.compile(r'^1\s+(\d{5})')

TLE_LINE_LENGTH = 69


def parse_catalog_id(line1) -> Optional[int]:
    """
    Parse the catalog number from TLE line 1.

    Returns:
        The catalog id, or None if line 1 is not a string or has no
        5-digit catalog field.
    """
    if not isinstance(line1, str):
        return None
    match = CATALOG_ID_PATTERN.match(line1.strip())
    if not match:
        return None
    return int(match.group(1))


def _optional_text(value) -> Optional[str]:
    """Stripped text of a metadata value; None when absent or blank."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()


@dataclass(frozen=True)
class ElementSet:
    """
    An immutable, validated element set as extracted from the upstream catalog.
    """
    catalog_id: int
    name: str
    line1: str
    line2: str
    country: Optional[str] = None
    launch: Optional[str] = None

    @classmethod
    def from_lines(cls, line1, line2, name=None, country=None, launch=None) -> 'ElementSet':
        """
        Build an element set from raw lines.

        Raises:
            MalformedRecord: if either line is missing or empty, or the
                catalog id cannot be parsed from line 1
        """
        if not isinstance(line1, str) or not line1.strip():
            raise MalformedRecord('line1 is missing or empty')
        if not isinstance(line2, str) or not line2.strip():
            raise MalformedRecord('line2 is missing or empty')

        line1 = line1.strip()
        line2 = line2.strip()
        catalog_id = parse_catalog_id(line1)
        if catalog_id is None:
            raise MalformedRecord(f'Unparsable catalog id in line1: {line1[:10]!r}')

        if not isinstance(name, str) or not name.strip():
            name = f'Satellite {catalog_id}'
        return cls(
            catalog_id=catalog_id,
            name=name.strip(),
            line1=line1,
            line2=line2,
            country=_optional_text(country),
            launch=_optional_text(launch),
        )

    def to_dict(self):
        """Convert model to dictionary."""
        return {
            'catalogId': self.catalog_id,
            'name': self.name,
            'line1': self.line1,
            'line2': self.line2,
            'country': self.country,
            'launch': self.launch,
        }

    def __repr__(self):
        return f'<ElementSet {self.name} (catalog: {self.catalog_id})>'
