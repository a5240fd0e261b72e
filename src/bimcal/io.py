from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

import pandas as pd

from bimcal.angles import parse_degrees
from bimcal.core.calibration_engine import point_error_updates
from bimcal.domain.schemas import CalibrationPoint, CalibrationResult

_ALIASES = {
    "id": ("id", "point", "name"),
    "model_x": ("model_x", "x"),
    "model_y": ("model_y", "y"),
    "model_z": ("model_z", "z"),
    "lat": ("gps_latitude", "latitude", "lat"),
    "lon": ("gps_longitude", "longitude", "lon", "lng"),
    "alt": ("gps_altitude", "altitude", "alt"),
    "accuracy": ("gps_accuracy_m", "accuracy"),
    "active": ("is_active", "active"),
}

_TRUE = {"1", "1.0", "true", "yes", "y", "t"}
_FALSE = {"0", "0.0", "false", "no", "n", "f"}


def _column(df: pd.DataFrame, key: str, required: bool = True) -> Optional[str]:
    for name in _ALIASES[key]:
        if name in df.columns:
            return name
    if required:
        raise ValueError(
            f"CSV must include one of the columns {_ALIASES[key]} (got {list(df.columns)})"
        )
    return None


def _optional_float(row: pd.Series, col: Optional[str]) -> Optional[float]:
    if col is None or pd.isnull(row[col]):
        return None
    return float(row[col])


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"Not a boolean: {value!r}")


def read_table(path: str | Path) -> pd.DataFrame:
    """Reads a CSV, normalizing column names to lowercase."""
    df = pd.read_csv(path)
    df.columns = [str(c).strip().lower() for c in df.columns]
    return df


def read_calibration_points(path: str | Path) -> List[CalibrationPoint]:
    """
    Reads calibration points from CSV. Latitude/longitude may be decimal
    degrees or DMS strings; the active column defaults to true.
    """
    df = read_table(path)
    id_col = _column(df, "id")
    x_col = _column(df, "model_x")
    y_col = _column(df, "model_y")
    lat_col = _column(df, "lat")
    lon_col = _column(df, "lon")
    z_col = _column(df, "model_z", required=False)
    alt_col = _column(df, "alt", required=False)
    acc_col = _column(df, "accuracy", required=False)
    active_col = _column(df, "active", required=False)

    points: List[CalibrationPoint] = []
    for _, row in df.iterrows():
        points.append(
            CalibrationPoint(
                id=str(row[id_col]).strip(),
                model_x=float(row[x_col]),
                model_y=float(row[y_col]),
                model_z=_optional_float(row, z_col),
                gps_latitude=parse_degrees(row[lat_col], "lat"),
                gps_longitude=parse_degrees(row[lon_col], "lon"),
                gps_altitude=_optional_float(row, alt_col),
                gps_accuracy_m=_optional_float(row, acc_col),
                is_active=True
                if active_col is None or pd.isnull(row[active_col])
                else _parse_bool(row[active_col]),
            )
        )
    return points


def residuals_frame(
    points: Sequence[CalibrationPoint], result: CalibrationResult
) -> pd.DataFrame:
    updates = point_error_updates(points, result)
    return pd.DataFrame(
        {
            "id": [u.point_id for u in updates],
            "is_active": [p.is_active for p in points],
            "calculated_error_m": [u.calculated_error_m for u in updates],
        }
    )


def save_results_csv(path: str | Path, df: pd.DataFrame) -> None:
    """Saves a Pandas DataFrame to CSV."""
    df.to_csv(path, index=False)
