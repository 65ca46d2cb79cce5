"""
Position models: observer location and computed satellite positions.
"""
import math
from dataclasses import dataclass, replace
from typing import Optional

from .element_set import parse_catalog_id
from utils.geodesy import haversine_distance_m


@dataclass(frozen=True)
class Observer:
    """Ground observer location in degrees."""
    latitude: float
    longitude: float

    def __post_init__(self):
        if not (math.isfinite(self.latitude) and math.isfinite(self.longitude)):
            raise ValueError('Observer coordinates must be finite numbers')
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f'Latitude out of range: {self.latitude}')
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f'Longitude out of range: {self.longitude}')

    @classmethod
    def from_query(cls, lat, lon) -> Optional['Observer']:
        """
        Build an observer from raw query values.

        Returns None when either value is absent or not a finite number.
        Out-of-range values raise ValueError.
        """
        try:
            latitude = float(lat)
            longitude = float(lon)
        except (TypeError, ValueError):
            return None
        if not (math.isfinite(latitude) and math.isfinite(longitude)):
            return None
        return cls(latitude=latitude, longitude=longitude)

    def distance_to(self, latitude_deg: float, longitude_deg: float) -> float:
        """Great-circle surface distance to a point, in meters."""
        return haversine_distance_m(self.latitude, self.longitude, latitude_deg, longitude_deg)

    def cell_key(self, precision: int = 1) -> str:
        """Rounded location key used to group nearby observers."""
        return f'{round(self.latitude, precision)},{round(self.longitude, precision)}'


@dataclass(frozen=True)
class PositionSample:
    """
    A satellite position at one instant. Derived and never mutated; a new
    set replaces the old one wholesale.
    """
    index: int
    catalog_id: int
    name: str
    latitude_deg: float
    longitude_deg: float
    altitude_meters: float
    distance_meters: Optional[float] = None
    line1: str = ''
    line2: str = ''
    country: Optional[str] = None
    launch: Optional[str] = None

    def with_distance(self, observer: Optional[Observer]) -> 'PositionSample':
        """Return a copy with the distance from `observer` attached."""
        if observer is None:
            return replace(self, distance_meters=None)
        return replace(
            self,
            distance_meters=observer.distance_to(self.latitude_deg, self.longitude_deg),
        )

    def is_overhead(self, threshold_meters: float) -> bool:
        return self.distance_meters is not None and self.distance_meters < threshold_meters

    def to_dict(self):
        """Convert to the position query response form."""
        data = {
            'index': self.index,
            'catalogId': self.catalog_id,
            'name': self.name,
            'lat': self.latitude_deg,
            'lng': self.longitude_deg,
            'altitude': self.altitude_meters,
            'country': self.country,
            'launch': self.launch,
        }
        if self.distance_meters is not None:
            data['distance'] = self.distance_meters
        return data

    def to_snapshot_dict(self):
        """Convert to the persisted snapshot form."""
        return {
            'index': self.index,
            'catalogId': self.catalog_id,
            'name': self.name,
            'line1': self.line1,
            'line2': self.line2,
            'latitude': self.latitude_deg,
            'longitude': self.longitude_deg,
            'altitude': self.altitude_meters,
            'country': self.country,
            'launch': self.launch,
        }

    @classmethod
    def from_snapshot_dict(cls, data) -> 'PositionSample':
        """
        Rebuild a sample from the persisted snapshot. A missing catalogId is
        parsed again from the stored line 1.

        Raises:
            KeyError, TypeError, ValueError: if the record is malformed
        """
        if not isinstance(data, dict):
            raise TypeError(f'Snapshot record must be an object, got {type(data).__name__}')

        line1 = data.get('line1') or ''
        line2 = data.get('line2') or ''
        catalog_id = data.get('catalogId')
        if catalog_id is None:
            catalog_id = parse_catalog_id(line1)
            if catalog_id is None:
                raise ValueError(f'Snapshot record has no catalog id: {line1[:10]!r}')

        latitude = float(data['latitude'])
        longitude = float(data['longitude'])
        altitude = float(data['altitude'])
        if not all(math.isfinite(v) for v in (latitude, longitude, altitude)):
            raise ValueError('Snapshot record has non-finite coordinates')

        catalog_id = int(catalog_id)
        return cls(
            index=int(data['index']),
            catalog_id=catalog_id,
            name=data.get('name') or f'Satellite {catalog_id}',
            latitude_deg=latitude,
            longitude_deg=longitude,
            altitude_meters=altitude,
            line1=line1,
            line2=line2,
            country=data.get('country'),
            launch=data.get('launch'),
        )
