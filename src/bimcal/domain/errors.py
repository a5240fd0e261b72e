from __future__ import annotations


class CalibrationError(Exception):
    """Base class for every expected failure of the calibration engine."""

    code = "calibration_error"


class InsufficientPoints(CalibrationError):
    code = "insufficient_points"

    def __init__(self, count: int, required: int = 2):
        self.count = count
        self.required = required
        super().__init__(
            f"At least {required} active calibration points required, got {count}"
        )


class DegeneratePoints(CalibrationError):
    """Model points or their GPS readings have no spatial spread, so scale cannot be solved."""

    code = "degenerate_points"

    def __init__(self, spread: float, frame: str = "model"):
        self.spread = spread
        self.frame = frame
        if frame == "target":
            message = f"GPS readings of the calibration points coincide (spread {spread:.3e} m²)"
        else:
            message = f"Calibration points are coincident in model space (spread {spread:.3e} m²)"
        super().__init__(message)


class UnsupportedUnit(CalibrationError, ValueError):
    code = "unsupported_unit"

    def __init__(self, unit: object):
        self.unit = unit
        super().__init__(f"Unsupported model unit: {unit!r}")


class UnknownReferenceSystem(CalibrationError, LookupError):
    code = "unknown_reference_system"

    def __init__(self, system_id: object):
        self.system_id = system_id
        super().__init__(f"Unknown coordinate system: {system_id!r}")

    def __str__(self) -> str:
        return self.args[0]


class NotCalibrated(CalibrationError, RuntimeError):
    code = "not_calibrated"

    def __init__(self, message: str = "Project not calibrated"):
        super().__init__(message)


class ProjectionFailed(CalibrationError, RuntimeError):
    code = "projection_failed"
