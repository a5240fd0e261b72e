import math
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, computed_field, model_validator


QualityCategory = Literal["excellent", "good", "fair", "poor"]
CalibrationStatus = Literal["not_calibrated", "calibrated"]


class CalibrationPoint(BaseModel):
    """One correspondence between a model position and a GPS reading."""

    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    model_x: float = Field(allow_inf_nan=False)
    model_y: float = Field(allow_inf_nan=False)
    model_z: Optional[float] = None
    gps_latitude: float = Field(ge=-90.0, le=90.0, allow_inf_nan=False)
    gps_longitude: float = Field(ge=-180.0, le=180.0, allow_inf_nan=False)
    gps_altitude: Optional[float] = None
    gps_accuracy_m: Optional[float] = Field(default=None, ge=0.0)
    is_active: bool = True
    calculated_error_m: Optional[float] = None
    capture_method: str = "manual"

    model_config = {"frozen": True}


class ModelPoint(BaseModel):
    x: float
    y: float

    model_config = {"frozen": True}


class GeoPoint(BaseModel):
    latitude: float = Field(alias="lat")
    longitude: float = Field(alias="lng")

    model_config = {"frozen": True, "populate_by_name": True}


class HelmertTransformParams(BaseModel):
    type: Literal["helmert_2d"] = "helmert_2d"
    scale: float = Field(gt=0.0, allow_inf_nan=False)
    rotation: float = Field(allow_inf_nan=False)
    translation_x: float = Field(allow_inf_nan=False)
    translation_y: float = Field(allow_inf_nan=False)
    # Anchors of the fit: first active point, in native model units and WGS84.
    origin_model: Optional[ModelPoint] = None
    origin_gps: Optional[GeoPoint] = None

    model_config = {"frozen": True}

    @computed_field
    @property
    def rotation_deg(self) -> float:
        return math.degrees(self.rotation)


class CalibrationQuality(BaseModel):
    rmse: float = Field(ge=0.0)
    max_error: float = Field(alias="maxError", ge=0.0)
    quality: QualityCategory
    errors: List[float]
    point_count: int
    is_underdetermined: bool = False

    model_config = {"frozen": True, "populate_by_name": True}

    @model_validator(mode="after")
    def check_error_count(self) -> "CalibrationQuality":
        if len(self.errors) != self.point_count:
            raise ValueError(
                f"errors has {len(self.errors)} entries for {self.point_count} points"
            )
        return self


class CalibrationResult(BaseModel):
    transform: HelmertTransformParams
    quality: CalibrationQuality

    model_config = {"frozen": True}


class PointErrorUpdate(BaseModel):
    point_id: str
    calculated_error_m: Optional[float] = None

    model_config = {"frozen": True}


class ProjectCoordinateSettings(BaseModel):
    project_id: str
    country_code: str = "LOCAL"
    coordinate_system_id: str = "local_calibrated"
    model_units: str = "millimeters"
    model_has_real_coordinates: bool = False
    calibration_status: CalibrationStatus = "not_calibrated"
    calibration_points_count: int = 0
    transform: Optional[HelmertTransformParams] = None
    calibration_rmse_m: Optional[float] = None
    calibration_max_error_m: Optional[float] = None
    calibration_quality: Optional[QualityCategory] = None
    calibrated_at: Optional[datetime] = None
    calibrated_by_name: Optional[str] = None

    model_config = {"frozen": True}
