import typer
from pathlib import Path
from typing import Optional

from bimcal.config import AppConfig, load_config, setup_logging
from bimcal.core.calibration_engine import calibrate as run_calibration
from bimcal.core.calibration_engine import dump_result, load_calibration
from bimcal.core.mapper import geographic_frame_to_model, model_frame_to_geographic
from bimcal.core.registry import list_reference_systems, reference_systems_for_country
from bimcal.domain.errors import CalibrationError
from bimcal.infrastructure.reports import generate_markdown_report
from bimcal.io import read_calibration_points, read_table, residuals_frame, save_results_csv

app = typer.Typer(no_args_is_help=True)


def _config(ctx: typer.Context) -> AppConfig:
    return ctx.obj if isinstance(ctx.obj, AppConfig) else load_config()


def _fail(e: Exception) -> None:
    typer.echo(f"Error: {e}", err=True)
    raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", help="YAML configuration file."),
) -> None:
    """bimcal: BIM model to GPS site calibration tools."""
    try:
        cfg = load_config(config)
        setup_logging(cfg.logging)
    except ValueError as e:
        _fail(e)
    ctx.obj = cfg


@app.command()
def version() -> None:
    """Print version."""
    typer.echo("bimcal 0.1.0")


@app.command()
def systems(
    country: Optional[str] = typer.Option(None, "--country", help="Only systems of this country code."),
) -> None:
    """List the supported coordinate reference systems."""
    rows = reference_systems_for_country(country) if country else list_reference_systems()
    for s in rows:
        epsg = f"EPSG:{s.epsg_code}" if s.epsg_code else "-"
        typer.echo(f"{s.id:<18} {epsg:<12} {s.country_code:<6} {s.name}")


@app.command()
def calibrate(
    ctx: typer.Context,
    points_csv: Path = typer.Option(..., "--points-csv", exists=True, readable=True, help="CSV with calibration points (id,model_x,model_y,lat,lon[,active])"),
    system: Optional[str] = typer.Option(None, "--system", help="Coordinate system id (see 'systems')."),
    units: Optional[str] = typer.Option(None, "--units", help="Model units: [millimeters|centimeters|meters]"),
    output_json: Optional[Path] = typer.Option(None, help="Write the fitted calibration as JSON."),
    report: Optional[Path] = typer.Option(None, help="Output report in Markdown format."),
    residuals_csv: Optional[Path] = typer.Option(None, help="Output CSV with per-point errors."),
) -> None:
    """
    Fits a Helmert 2D transformation from model coordinates to GPS using the
    active calibration points.
    """
    cfg = _config(ctx)
    system = system or cfg.project.coordinate_system_id
    units = units or cfg.project.model_units

    try:
        points = read_calibration_points(points_csv)
        result = run_calibration(points, system, units, cfg.calibration_config())
    except (CalibrationError, ValueError) as e:
        _fail(e)

    q = result.quality
    t = result.transform
    typer.echo(f"Points:   {q.point_count}")
    typer.echo(f"Scale:    {t.scale:.9f}")
    typer.echo(f"Rotation: {t.rotation_deg:.6f} deg")
    typer.echo(f"RMSE:     {q.rmse:.3f} m (max {q.max_error:.3f} m)")
    typer.echo(f"Quality:  {q.quality}")
    if q.is_underdetermined:
        typer.echo("Warning: 2-point fit is exact by construction; add a third point to verify.")

    if output_json:
        output_json.write_text(dump_result(result, system, units), encoding="utf-8")
        typer.echo(f"Calibration saved to: {output_json}")
    if report:
        generate_markdown_report(result, points, system, units, report)
        typer.echo(f"Calibration report generated at: {report}")
    if residuals_csv:
        save_results_csv(residuals_csv, residuals_frame(points, result))
        typer.echo(f"Per-point errors saved to: {residuals_csv}")


def _load(calibration_json: Path, system: Optional[str], units: Optional[str]):
    saved = load_calibration(calibration_json.read_text(encoding="utf-8"))
    system = system or saved.coordinate_system_id
    units = units or saved.model_units
    if system is None or units is None:
        raise ValueError("Calibration file has no system/units; pass --system and --units")
    return saved.result.transform, system, units


@app.command()
def model2gps(
    calibration_json: Path = typer.Option(..., "--calibration-json", exists=True, readable=True),
    input_csv: Path = typer.Option(..., "--input-csv", exists=True, readable=True, help="CSV with model_x,model_y columns"),
    output_csv: Path = typer.Option(..., "--output-csv"),
    system: Optional[str] = typer.Option(None, "--system"),
    units: Optional[str] = typer.Option(None, "--units"),
    points_csv: Optional[Path] = typer.Option(None, "--points-csv", help="Calibration points, to warn on extrapolation."),
) -> None:
    """Converts model coordinates to WGS84 latitude/longitude."""
    try:
        transform, system, units = _load(calibration_json, system, units)
        control = read_calibration_points(points_csv) if points_csv else None
        out = model_frame_to_geographic(read_table(input_csv), units, transform, system, control)
    except (CalibrationError, ValueError, KeyError) as e:
        _fail(e)
    save_results_csv(output_csv, out)
    typer.echo(f"Wrote {len(out)} points to {output_csv}")


@app.command()
def gps2model(
    calibration_json: Path = typer.Option(..., "--calibration-json", exists=True, readable=True),
    input_csv: Path = typer.Option(..., "--input-csv", exists=True, readable=True, help="CSV with latitude,longitude columns"),
    output_csv: Path = typer.Option(..., "--output-csv"),
    system: Optional[str] = typer.Option(None, "--system"),
    units: Optional[str] = typer.Option(None, "--units"),
    points_csv: Optional[Path] = typer.Option(None, "--points-csv", help="Calibration points, to warn on extrapolation."),
) -> None:
    """Converts WGS84 latitude/longitude to model coordinates."""
    try:
        transform, system, units = _load(calibration_json, system, units)
        control = read_calibration_points(points_csv) if points_csv else None
        out = geographic_frame_to_model(read_table(input_csv), units, transform, system, control)
    except (CalibrationError, ValueError, KeyError) as e:
        _fail(e)
    save_results_csv(output_csv, out)
    typer.echo(f"Wrote {len(out)} points to {output_csv}")


if __name__ == "__main__":
    app()
