import warnings
from typing import Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from bimcal.core.math_engine import apply_helmert, inverse_helmert
from bimcal.core.projections import EPSG, ProjectionFactory
from bimcal.core.quality import check_extrapolation
from bimcal.core.registry import ReferenceSystem, lookup_reference_system
from bimcal.core.units import units_to_meters
from bimcal.domain.errors import NotCalibrated
from bimcal.domain.schemas import (
    CalibrationPoint,
    HelmertTransformParams,
    ProjectCoordinateSettings,
)

ArrayLike = Union[float, np.ndarray]
SystemRef = Union[ReferenceSystem, str]


def _system(reference_system: SystemRef) -> ReferenceSystem:
    if isinstance(reference_system, ReferenceSystem):
        return reference_system
    return lookup_reference_system(reference_system)


def _coerce(value):
    return float(value) if np.ndim(value) == 0 else np.asarray(value, dtype=float)


def model_to_geographic(
    model_x: ArrayLike,
    model_y: ArrayLike,
    unit: str,
    transform: Optional[HelmertTransformParams],
    reference_system: SystemRef,
) -> Tuple[ArrayLike, ArrayLike]:
    """Model coordinates (native units) -> WGS84 (latitude, longitude)."""
    if transform is None:
        raise NotCalibrated()
    factor = units_to_meters(unit)
    projection = ProjectionFactory.create(_system(reference_system), transform.origin_gps)

    x_m = _coerce(model_x) * factor
    y_m = _coerce(model_y) * factor
    easting, northing = apply_helmert(transform, x_m, y_m)
    lat, lon = projection.to_geographic(easting, northing)
    return _coerce(lat), _coerce(lon)


def geographic_to_model(
    latitude: ArrayLike,
    longitude: ArrayLike,
    unit: str,
    transform: Optional[HelmertTransformParams],
    reference_system: SystemRef,
) -> Tuple[ArrayLike, ArrayLike]:
    """WGS84 (latitude, longitude) -> model coordinates in native units."""
    if transform is None:
        raise NotCalibrated()
    factor = units_to_meters(unit)
    projection = ProjectionFactory.create(_system(reference_system), transform.origin_gps)

    easting, northing = projection.to_planar(
        _coerce(latitude), _coerce(longitude)
    )
    x_m, y_m = inverse_helmert(transform, _coerce(easting), _coerce(northing))
    return _coerce(x_m / factor), _coerce(y_m / factor)


def model_to_gps(
    model_x: ArrayLike, model_y: ArrayLike, settings: ProjectCoordinateSettings
) -> Tuple[ArrayLike, ArrayLike]:
    """
    Converts using a project's stored settings.

    Models placed in real-world coordinates skip the Helmert step: their
    coordinates are already projected coordinates of the EPSG system.
    """
    system = lookup_reference_system(settings.coordinate_system_id)
    if settings.model_has_real_coordinates and system.epsg_code is not None:
        factor = units_to_meters(settings.model_units)
        lat, lon = EPSG(system.epsg_code).to_geographic(
            _coerce(model_x) * factor,
            _coerce(model_y) * factor,
        )
        return _coerce(lat), _coerce(lon)
    return model_to_geographic(
        model_x, model_y, settings.model_units, settings.transform, system
    )


def gps_to_model(
    latitude: ArrayLike, longitude: ArrayLike, settings: ProjectCoordinateSettings
) -> Tuple[ArrayLike, ArrayLike]:
    system = lookup_reference_system(settings.coordinate_system_id)
    if settings.model_has_real_coordinates and system.epsg_code is not None:
        factor = units_to_meters(settings.model_units)
        easting, northing = EPSG(system.epsg_code).to_planar(
            _coerce(latitude), _coerce(longitude)
        )
        return _coerce(_coerce(easting) / factor), _coerce(_coerce(northing) / factor)
    return geographic_to_model(
        latitude, longitude, settings.model_units, settings.transform, system
    )


def _control_model_xy(points: Optional[Sequence[CalibrationPoint]]) -> Optional[np.ndarray]:
    if not points:
        return None
    active = [p for p in points if p.is_active]
    if not active:
        return None
    return np.array([[p.model_x, p.model_y] for p in active], dtype=float)


def _warn_if_extrapolating(x, y, control_points) -> None:
    max_out, count = check_extrapolation(x, y, _control_model_xy(control_points))
    if max_out is not None:
        warnings.warn(
            f"Extrapolation: {count} points fall outside the calibration polygon. "
            f"Max distance to the edge: {max_out:.3f} model units"
        )


def model_frame_to_geographic(
    df: pd.DataFrame,
    unit: str,
    transform: Optional[HelmertTransformParams],
    reference_system: SystemRef,
    control_points: Optional[Sequence[CalibrationPoint]] = None,
    x_col: str = "model_x",
    y_col: str = "model_y",
) -> pd.DataFrame:
    """
    Batch model -> WGS84 conversion. Adds latitude/longitude columns to a copy.
    Warns when points lie outside the polygon of the control points.
    """
    x = df[x_col].to_numpy(dtype=float)
    y = df[y_col].to_numpy(dtype=float)
    lat, lon = model_to_geographic(x, y, unit, transform, reference_system)
    _warn_if_extrapolating(x, y, control_points)

    out = df.copy()
    out["latitude"] = np.atleast_1d(lat)
    out["longitude"] = np.atleast_1d(lon)
    return out


def geographic_frame_to_model(
    df: pd.DataFrame,
    unit: str,
    transform: Optional[HelmertTransformParams],
    reference_system: SystemRef,
    control_points: Optional[Sequence[CalibrationPoint]] = None,
    lat_col: str = "latitude",
    lon_col: str = "longitude",
) -> pd.DataFrame:
    lat = df[lat_col].to_numpy(dtype=float)
    lon = df[lon_col].to_numpy(dtype=float)
    x, y = geographic_to_model(lat, lon, unit, transform, reference_system)
    x = np.atleast_1d(x)
    y = np.atleast_1d(y)
    _warn_if_extrapolating(x, y, control_points)

    out = df.copy()
    out["model_x"] = x
    out["model_y"] = y
    return out
