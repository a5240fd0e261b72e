"""Shared fixtures and synthetic calibration datasets."""

import math
import os
import sys

import numpy as np
import pytest

# ---------------------------------------------------------------------------
# Make the source tree importable when pytest is run from the project root
# ---------------------------------------------------------------------------
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from bimcal.core.projections import EPSG, LocalTM  # noqa: E402
from bimcal.domain.schemas import CalibrationPoint  # noqa: E402


# Site origin in Tallinn old town.
SITE_LAT = 59.4370
SITE_LON = 24.7536

# True model -> planar similarity used by the synthetic datasets.
SCALE_TRUE = 1.0
ROTATION_TRUE = math.radians(30.0)

# Model coordinates in metres; the first point sits on the model origin.
MODEL_XY_M = np.array([
    [0.0, 0.0],
    [60.0, 0.0],
    [60.0, 40.0],
    [0.0, 40.0],
    [25.0, 18.0],
])


def similarity(xy, scale, rotation, tx, ty):
    c, s = math.cos(rotation), math.sin(rotation)
    x, y = np.asarray(xy, dtype=float).T
    return np.column_stack((scale * (c * x - s * y) + tx, scale * (s * x + c * y) + ty))


def make_points(model_xy_native, lats, lons, active=None, prefix="P"):
    active = active if active is not None else [True] * len(lats)
    return [
        CalibrationPoint(
            id=f"{prefix}{i + 1}",
            model_x=float(x),
            model_y=float(y),
            gps_latitude=float(lat),
            gps_longitude=float(lon),
            is_active=bool(a),
        )
        for i, ((x, y), lat, lon, a) in enumerate(zip(model_xy_native, lats, lons, active))
    ]


def local_site_points(model_xy_m=MODEL_XY_M, unit_factor=1.0, active=None):
    """
    Noise-free points for the local system: the true similarity maps the first
    model point onto the TM origin, so the calibration reproduces it exactly.
    """
    planar = similarity(model_xy_m, SCALE_TRUE, ROTATION_TRUE, 0.0, 0.0)
    lats, lons = LocalTM(SITE_LAT, SITE_LON).to_geographic(planar[:, 0], planar[:, 1])
    return make_points(np.asarray(model_xy_m) / unit_factor, lats, lons, active)


def epsg_site_points(epsg_code, tx, ty, model_xy_m=MODEL_XY_M, unit_factor=1.0):
    planar = similarity(model_xy_m, SCALE_TRUE, ROTATION_TRUE, tx, ty)
    lats, lons = EPSG(epsg_code).to_geographic(planar[:, 0], planar[:, 1])
    return make_points(np.asarray(model_xy_m) / unit_factor, lats, lons)


@pytest.fixture
def site_points():
    return local_site_points()


@pytest.fixture
def tallinn_two_points():
    """Two points 100 model-metres apart along X, 0.0014° apart in longitude."""
    return [
        CalibrationPoint(id="A", model_x=0.0, model_y=0.0, gps_latitude=59.4370, gps_longitude=24.7536),
        CalibrationPoint(id="B", model_x=100.0, model_y=0.0, gps_latitude=59.4370, gps_longitude=24.7550),
    ]
