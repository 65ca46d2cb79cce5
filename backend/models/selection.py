"""
Selection entry model for the persisted working set.
"""
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional

from .element_set import ElementSet


def _parse_timestamp(value) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not isinstance(value, str):
        raise ValueError(f'Invalid timestamp: {value!r}')
    stamp = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp


@dataclass(frozen=True)
class SelectionEntry:
    """
    One tracked object in the working set.

    `index` is the 1-based stable display order. An entry is created once per
    catalog id and afterwards only its element lines, name, country, launch
    and `updated_at`
    change.
    """
    index: int
    catalog_id: int
    line1: str
    line2: str
    selected_at: datetime
    updated_at: datetime
    name: Optional[str] = None
    country: Optional[str] = None
    launch: Optional[str] = None

    @classmethod
    def create(cls, index: int, element_set: ElementSet, now: datetime) -> 'SelectionEntry':
        """Select an element set for the first time."""
        return cls(
            index=index,
            catalog_id=element_set.catalog_id,
            line1=element_set.line1,
            line2=element_set.line2,
            selected_at=now,
            updated_at=now,
            name=element_set.name,
            country=element_set.country,
            launch=element_set.launch,
        )

    def refreshed(self, element_set: ElementSet, now: datetime) -> 'SelectionEntry':
        """Return a copy carrying the latest observed element lines."""
        return replace(
            self,
            line1=element_set.line1,
            line2=element_set.line2,
            name=element_set.name or self.name,
            country=element_set.country or self.country,
            launch=element_set.launch or self.launch,
            updated_at=now,
        )

    @property
    def display_name(self) -> str:
        return self.name or f'Satellite {self.catalog_id}'

    def to_dict(self):
        """Convert model to the persisted dictionary form."""
        return {
            'index': self.index,
            'catalogId': self.catalog_id,
            'name': self.name,
            'country': self.country,
            'launch': self.launch,
            'line1': self.line1,
            'line2': self.line2,
            'selectedAt': self.selected_at.isoformat(),
            'updatedAt': self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data) -> 'SelectionEntry':
        """
        Rebuild an entry from its persisted form.

        Raises:
            KeyError, TypeError, ValueError: if the document is malformed
        """
        if not isinstance(data, dict):
            raise TypeError(f'Selection entry must be an object, got {type(data).__name__}')
        line1 = data['line1']
        line2 = data['line2']
        if not isinstance(line1, str) or not isinstance(line2, str):
            raise TypeError('Selection entry lines must be strings')
        return cls(
            index=int(data['index']),
            catalog_id=int(data['catalogId']),
            line1=line1,
            line2=line2,
            selected_at=_parse_timestamp(data['selectedAt']),
            updated_at=_parse_timestamp(data['updatedAt']),
            name=data.get('name'),
            country=data.get('country'),
            launch=data.get('launch'),
        )

    def __repr__(self):
        return f'<SelectionEntry #{self.index} (catalog: {self.catalog_id})>'
