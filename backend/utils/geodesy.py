"""
Geodesy helpers: sidereal time, ECI to geodetic conversion and great-circle
distance.
"""
import math
from typing import Tuple

# WGS-84 ellipsoid (km)
WGS84_A = 6378.137
WGS84_B = 6356.7523142
WGS84_F = (WGS84_A - WGS84_B) / WGS84_A
WGS84_E2 = 2 * WGS84_F - WGS84_F * WGS84_F

# Mean Earth radius used for surface distances (m)
EARTH_RADIUS_M = 6371000.0

TWO_PI = 2.0 * math.pi


def gmst_rad(jd: float, fr: float = 0.0) -> float:
    """
    Greenwich Mean Sidereal Time (IAU-82) in radians.

    Args:
        jd: Julian date (whole part as returned by sgp4.api.jday)
        fr: Fraction of day

    Returns:
        GMST in [0, 2*pi)
    """
    tut1 = (jd - 2451545.0 + fr) / 36525.0
    gmst_sec = (
        67310.54841 +
        (876600.0 * 3600.0 + 8640184.812866) * tut1 +
        0.093104 * tut1 * tut1 -
        6.2e-6 * tut1 * tut1 * tut1
    )
    return (gmst_sec % 86400.0) * (TWO_PI / 86400.0)


def normalize_longitude(lon_rad: float) -> float:
    """Wrap a longitude in radians to [-pi, pi]."""
    while lon_rad < -math.pi:
        lon_rad += TWO_PI
    while lon_rad > math.pi:
        lon_rad -= TWO_PI
    return lon_rad


def eci_to_geodetic(x: float, y: float, z: float, gmst: float) -> Tuple[float, float, float]:
    """
    Convert an ECI position to geodetic coordinates on the WGS-84 ellipsoid.

    Args:
        x, y, z: ECI position in km
        gmst: Greenwich Mean Sidereal Time in radians

    Returns:
        Tuple of (latitude_rad, longitude_rad, height_km), longitude in [-pi, pi]
    """
    r = math.sqrt(x * x + y * y)

    longitude = normalize_longitude(math.atan2(y, x) - gmst)

    # Iterative latitude; converges well inside 20 rounds for orbital radii
    latitude = math.atan2(z, r)
    c = 1.0
    for _ in range(20):
        sin_lat = math.sin(latitude)
        c = 1.0 / math.sqrt(1.0 - WGS84_E2 * sin_lat * sin_lat)
        latitude = math.atan2(z + WGS84_A * c * WGS84_E2 * sin_lat, r)

    cos_lat = math.cos(latitude)
    if abs(cos_lat) > 1e-10:
        height = r / cos_lat - WGS84_A * c
    else:
        # Over a pole
        height = abs(z) - WGS84_B

    return latitude, longitude, height


def haversine_distance_m(
    lat1_deg: float,
    lon1_deg: float,
    lat2_deg: float,
    lon2_deg: float,
    radius_m: float = EARTH_RADIUS_M
) -> float:
    """Great-circle surface distance in meters (spherical law of haversines)."""
    rlat1, rlon1, rlat2, rlon2 = map(math.radians, [lat1_deg, lon1_deg, lat2_deg, lon2_deg])
    dlat = rlat2 - rlat1
    dlon = rlon2 - rlon1
    a = math.sin(dlat / 2) ** 2 + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlon / 2) ** 2
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return radius_m * c
