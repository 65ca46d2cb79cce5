"""
Position computation using the SGP4 propagator.

Propagates element pairs to a single instant, converts the ECI position to
geodetic coordinates and optionally measures the surface distance from an
observer. Every entry is handled independently: a bad element set costs
only its own sample.
"""
import math
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from sgp4.api import Satrec, jday

from logging_config import get_logger
from models import Observer, PositionSample
from models.element_set import TLE_LINE_LENGTH
from utils.exceptions import PropagationFailure
from utils.geodesy import eci_to_geodetic, gmst_rad

logger = get_logger(__name__)


# SGP4 error code meanings
SGP4_ERROR_CODES = {
    0: "No error",
    1: "Mean eccentricity < 0.0 or > 1.0",
    2: "Mean motion < 0.0",
    3: "Perturbed eccentricity < 0.0 or > 1.0",
    4: "Semi-latus rectum < 0.0",
    5: "Satellite has decayed",
    6: "Satellite has decayed (low altitude)",
}


def as_utc(time: Optional[datetime]) -> datetime:
    """Current UTC time when None; naive datetimes are taken as UTC."""
    if time is None:
        return datetime.now(timezone.utc)
    if time.tzinfo is None:
        return time.replace(tzinfo=timezone.utc)
    return time.astimezone(timezone.utc)


def julian_date(time: datetime) -> Tuple[float, float]:
    """Split Julian date (jd, fr) of a UTC instant, from its calendar fields."""
    time = as_utc(time)
    return jday(
        time.year, time.month, time.day,
        time.hour, time.minute, time.second + time.microsecond / 1e6
    )


def parse_satrec(line1, line2) -> Satrec:
    """
    Parse an element pair into an SGP4 record.

    Raises:
        PropagationFailure: if the lines do not have the fixed TLE shape or
            the propagator rejects them
    """
    if not isinstance(line1, str) or not isinstance(line2, str):
        raise PropagationFailure('Element lines must be strings')
    line1 = line1.strip()
    line2 = line2.strip()
    if len(line1) != TLE_LINE_LENGTH or len(line2) != TLE_LINE_LENGTH:
        raise PropagationFailure(
            f'Element lines must be {TLE_LINE_LENGTH} characters, got {len(line1)} and {len(line2)}'
        )
    if not line1.startswith('1 ') or not line2.startswith('2 '):
        raise PropagationFailure('Element lines must start with line numbers 1 and 2')

    try:
        satrec = Satrec.twoline2rv(line1, line2)
    except (ValueError, TypeError, IndexError, RuntimeError) as e:
        raise PropagationFailure(f'Invalid element set: {e}') from e

    if satrec.error:
        raise PropagationFailure(SGP4_ERROR_CODES.get(satrec.error, f'SGP4 error {satrec.error}'))
    return satrec


class PositionComputer:
    """
    Computes PositionSample sets from selection entries.

    Stateless; the same instance can serve concurrent requests.
    """

    def compute(
        self,
        entries: Iterable,
        at_time: Optional[datetime] = None,
        observer: Optional[Observer] = None,
        sort_by_distance: bool = False
    ) -> List[PositionSample]:
        """
        Propagate every entry to `at_time`.

        Args:
            entries: SelectionEntry (or ElementSet) objects
            at_time: Target instant, default now (UTC)
            observer: If given, each sample carries its distance from it
            sort_by_distance: Order by ascending distance (ties by catalog
                id) instead of input order. Requires an observer.

        Returns:
            Samples for every entry that propagated cleanly
        """
        at_time = as_utc(at_time)
        jd, fr = julian_date(at_time)
        gmst = gmst_rad(jd, fr)

        samples = []
        skipped = 0
        for position, entry in enumerate(entries, start=1):
            try:
                sample = self.compute_one(entry, jd, fr, gmst, position)
            except PropagationFailure as e:
                skipped += 1
                logger.debug(f"[PositionComputer] Skipping {getattr(entry, 'catalog_id', position)}: {e}")
                continue
            if observer is not None:
                sample = sample.with_distance(observer)
            samples.append(sample)

        if skipped:
            logger.info(f"[PositionComputer] Computed {len(samples)} positions, skipped {skipped}")

        if sort_by_distance and observer is not None:
            samples.sort(key=lambda sample: (sample.distance_meters, sample.catalog_id))
        return samples

    def compute_one(self, entry, jd: float, fr: float, gmst: float, position: int = 1) -> PositionSample:
        """
        Propagate a single entry.

        Raises:
            PropagationFailure: on parse, propagation or conversion failure
        """
        satrec = parse_satrec(entry.line1, entry.line2)

        error, r, _v = satrec.sgp4(jd, fr)
        if error != 0:
            raise PropagationFailure(SGP4_ERROR_CODES.get(error, f'SGP4 error {error}'))
        if r is None or len(r) != 3 or not all(math.isfinite(c) for c in r):
            raise PropagationFailure('Propagator returned a non-finite position')

        x, y, z = r
        lat_rad, lon_rad, height_km = eci_to_geodetic(x, y, z, gmst)

        latitude = math.degrees(lat_rad)
        longitude = math.degrees(lon_rad)
        altitude = height_km * 1000.0
        if not all(math.isfinite(v) for v in (latitude, longitude, altitude)):
            raise PropagationFailure('Geodetic conversion produced non-finite coordinates')

        name = getattr(entry, 'display_name', None) or getattr(entry, 'name', None)
        catalog_id = entry.catalog_id
        return PositionSample(
            index=getattr(entry, 'index', position),
            catalog_id=catalog_id,
            name=name or f'Satellite {catalog_id}',
            latitude_deg=latitude,
            longitude_deg=longitude,
            altitude_meters=altitude,
            line1=entry.line1.strip(),
            line2=entry.line2.strip(),
            country=getattr(entry, 'country', None),
            launch=getattr(entry, 'launch', None),
        )


# Singleton instance
position_computer = PositionComputer()
