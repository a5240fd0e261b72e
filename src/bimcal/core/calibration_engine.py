import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence

import numpy as np

from bimcal.core.math_engine import solve_helmert_2d
from bimcal.core.projections import ProjectionFactory
from bimcal.core.quality import assess_quality
from bimcal.core.registry import lookup_reference_system, reference_systems_for_country
from bimcal.core.units import units_to_meters
from bimcal.domain.errors import CalibrationError, InsufficientPoints
from bimcal.domain.schemas import (
    CalibrationPoint,
    CalibrationResult,
    GeoPoint,
    ModelPoint,
    PointErrorUpdate,
    ProjectCoordinateSettings,
)
from bimcal.models import CalibrationConfig

logger = logging.getLogger(__name__)

METHOD = "helmert_2d"


@dataclass(frozen=True)
class CalibrationOutcome:
    """Either a result or the reason there is none."""
    result: Optional[CalibrationResult] = None
    error: Optional[CalibrationError] = None

    @property
    def ok(self) -> bool:
        return self.result is not None


def active_points(points: Sequence[CalibrationPoint]) -> List[CalibrationPoint]:
    return [p for p in points if p.is_active]


def calibrate(
    points: Sequence[CalibrationPoint],
    coordinate_system_id: str,
    model_units: str,
    config: Optional[CalibrationConfig] = None,
) -> CalibrationResult:
    """
    Fits model coordinates to GPS readings.

    Only active points take part; the residuals in the returned quality are
    in the order of the active points as given.
    """
    config = config or CalibrationConfig()

    active = active_points(points)
    if len(active) < config.min_points:
        raise InsufficientPoints(len(active), config.min_points)

    system = lookup_reference_system(coordinate_system_id)
    factor = units_to_meters(model_units)

    first = active[0]
    origin_gps = GeoPoint(latitude=first.gps_latitude, longitude=first.gps_longitude)
    projection = ProjectionFactory.create(system, origin_gps)

    model_xy = np.array([[p.model_x, p.model_y] for p in active], dtype=float) * factor
    lats = np.array([p.gps_latitude for p in active], dtype=float)
    lons = np.array([p.gps_longitude for p in active], dtype=float)
    easting, northing = projection.to_planar(lats, lons)
    target_xy = np.column_stack((easting, northing))

    params = solve_helmert_2d(model_xy, target_xy, epsilon=config.degenerate_epsilon)
    params = params.model_copy(
        update={
            "origin_model": ModelPoint(x=first.model_x, y=first.model_y),
            "origin_gps": origin_gps,
        }
    )
    quality = assess_quality(params, model_xy, target_xy, config.thresholds)

    logger.info(
        "Calibrated %d points in %s: scale=%.6f rotation=%.4f deg rmse=%.3f m (%s)",
        quality.point_count,
        system.id,
        params.scale,
        params.rotation_deg,
        quality.rmse,
        quality.quality,
    )
    return CalibrationResult(transform=params, quality=quality)


def try_calibrate(
    points: Sequence[CalibrationPoint],
    coordinate_system_id: str,
    model_units: str,
    config: Optional[CalibrationConfig] = None,
) -> CalibrationOutcome:
    try:
        return CalibrationOutcome(
            result=calibrate(points, coordinate_system_id, model_units, config)
        )
    except CalibrationError as e:
        logger.info("Calibration rejected (%s): %s", e.code, e)
        return CalibrationOutcome(error=e)


def point_error_updates(
    points: Sequence[CalibrationPoint], result: CalibrationResult
) -> List[PointErrorUpdate]:
    """
    Per-point write-back payload: active points get their residual from this
    fit, inactive points have any stale residual cleared.
    """
    errors = list(result.quality.errors)
    n_active = sum(1 for p in points if p.is_active)
    if n_active != len(errors):
        raise ValueError(
            f"Result has {len(errors)} residuals for {n_active} active points"
        )

    residuals = iter(errors)
    return [
        PointErrorUpdate(
            point_id=p.id, calculated_error_m=next(residuals) if p.is_active else None
        )
        for p in points
    ]


def apply_calibration(
    settings: ProjectCoordinateSettings,
    result: CalibrationResult,
    calibrated_by: Optional[str] = None,
    calibrated_at: Optional[datetime] = None,
) -> ProjectCoordinateSettings:
    return settings.model_copy(
        update={
            "calibration_status": "calibrated",
            "calibration_points_count": result.quality.point_count,
            "transform": result.transform,
            "calibration_rmse_m": result.quality.rmse,
            "calibration_max_error_m": result.quality.max_error,
            "calibration_quality": result.quality.quality,
            "calibrated_at": calibrated_at or datetime.now(timezone.utc),
            "calibrated_by_name": calibrated_by,
        }
    )


def reset_calibration(settings: ProjectCoordinateSettings) -> ProjectCoordinateSettings:
    return settings.model_copy(
        update={
            "calibration_status": "not_calibrated",
            "calibration_points_count": 0,
            "transform": None,
            "calibration_rmse_m": None,
            "calibration_max_error_m": None,
            "calibration_quality": None,
            "calibrated_at": None,
            "calibrated_by_name": None,
        }
    )


def change_reference_system(
    settings: ProjectCoordinateSettings, coordinate_system_id: str
) -> ProjectCoordinateSettings:
    # A transform only holds for the system it was fitted in.
    system = lookup_reference_system(coordinate_system_id)
    return reset_calibration(settings).model_copy(
        update={"coordinate_system_id": system.id}
    )


def change_country(
    settings: ProjectCoordinateSettings, country_code: str
) -> ProjectCoordinateSettings:
    systems = reference_systems_for_country(country_code)
    system_id = systems[0].id if systems else "local_calibrated"
    return reset_calibration(settings).model_copy(
        update={"country_code": country_code.upper(), "coordinate_system_id": system_id}
    )


def change_model_units(
    settings: ProjectCoordinateSettings, model_units: str
) -> ProjectCoordinateSettings:
    units_to_meters(model_units)
    return reset_calibration(settings).model_copy(update={"model_units": model_units})


def dump_result(
    result: CalibrationResult,
    coordinate_system_id: Optional[str] = None,
    model_units: Optional[str] = None,
) -> str:
    """Serializes a calibration result to a JSON string."""
    data = {
        "method": METHOD,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "coordinate_system_id": coordinate_system_id,
        "model_units": model_units,
        "result": result.model_dump(mode="json", by_alias=True),
    }
    return json.dumps(data, indent=4)


@dataclass(frozen=True)
class SavedCalibration:
    result: CalibrationResult
    coordinate_system_id: Optional[str] = None
    model_units: Optional[str] = None


def load_calibration(json_str: str) -> SavedCalibration:
    """Deserializes a JSON string written by dump_result."""
    data = json.loads(json_str)
    if data.get("method") != METHOD:
        raise ValueError(f"Invalid method in calibration file: {data.get('method')}")
    if "result" not in data:
        raise ValueError("Missing result in the loaded calibration.")
    return SavedCalibration(
        result=CalibrationResult.model_validate(data["result"]),
        coordinate_system_id=data.get("coordinate_system_id"),
        model_units=data.get("model_units"),
    )


def load_result(json_str: str) -> CalibrationResult:
    return load_calibration(json_str).result
