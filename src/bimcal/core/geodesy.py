from __future__ import annotations

from itertools import combinations
from typing import Sequence

from pyproj import Geod

from bimcal.domain.schemas import CalibrationPoint

_GEOD = Geod(ellps="WGS84")


def gps_distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Geodesic distance between two WGS84 positions, in metres."""
    _, _, dist = _GEOD.inv(lon1, lat1, lon2, lat2)
    return float(dist)


def gps_spread_m(points: Sequence[CalibrationPoint]) -> float:
    """Largest distance between any two GPS readings (0.0 for fewer than 2)."""
    spread = 0.0
    for p, q in combinations(points, 2):
        spread = max(
            spread,
            gps_distance_m(p.gps_latitude, p.gps_longitude, q.gps_latitude, q.gps_longitude),
        )
    return spread
