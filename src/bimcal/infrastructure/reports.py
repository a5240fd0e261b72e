from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

from bimcal.core.calibration_engine import active_points
from bimcal.core.geodesy import gps_spread_m
from bimcal.core.registry import lookup_reference_system
from bimcal.domain.schemas import CalibrationPoint, CalibrationResult


def render_markdown_report(
    result: CalibrationResult,
    points: Sequence[CalibrationPoint],
    coordinate_system_id: str,
    model_units: str,
) -> str:
    system = lookup_reference_system(coordinate_system_id)
    active = active_points(points)
    t = result.transform
    q = result.quality

    epsg = f"EPSG:{system.epsg_code}" if system.epsg_code else "local transverse Mercator"
    lines = [
        "# Site Calibration Report",
        "",
        f"Generated: {datetime.now(timezone.utc).isoformat(timespec='seconds')}",
        "",
        "## Setup",
        "",
        f"- Coordinate system: {system.name} ({epsg})",
        f"- Model units: {model_units}",
        f"- Points: {q.point_count} active of {len(points)}",
        f"- GPS spread: {gps_spread_m(active):.1f} m",
        "",
        "## Helmert 2D parameters",
        "",
        "| Parameter | Value |",
        "|---|---|",
        f"| Scale | {t.scale:.9f} |",
        f"| Rotation | {t.rotation_deg:.6f}° ({t.rotation:.9f} rad) |",
        f"| Translation X | {t.translation_x:.3f} m |",
        f"| Translation Y | {t.translation_y:.3f} m |",
        "",
        "## Quality",
        "",
        f"- RMSE: {q.rmse:.3f} m",
        f"- Max error: {q.max_error:.3f} m",
        f"- Quality: **{q.quality}**",
    ]
    if q.is_underdetermined:
        lines.append(
            "- Only 2 points: the fit is exact by construction and has not been "
            "checked against an independent point."
        )

    lines += [
        "",
        "## Residuals",
        "",
        "| Point | Model X | Model Y | Latitude | Longitude | Error (m) |",
        "|---|---|---|---|---|---|",
    ]
    for p, err in zip(active, q.errors):
        lines.append(
            f"| {p.name or p.id} | {p.model_x:.3f} | {p.model_y:.3f} "
            f"| {p.gps_latitude:.8f} | {p.gps_longitude:.8f} | {err:.3f} |"
        )
    return "\n".join(lines) + "\n"


def generate_markdown_report(
    result: CalibrationResult,
    points: Sequence[CalibrationPoint],
    coordinate_system_id: str,
    model_units: str,
    output_path: Path,
) -> None:
    output_path = Path(output_path)
    output_path.write_text(
        render_markdown_report(result, points, coordinate_system_id, model_units),
        encoding="utf-8",
    )
