from __future__ import annotations

from typing import Dict

from bimcal.domain.errors import UnsupportedUnit


UNITS_TO_METERS: Dict[str, float] = {
    "millimeters": 0.001,
    "centimeters": 0.01,
    "meters": 1.0,
}


def units_to_meters(unit: str) -> float:
    """Scalar that converts a model's native linear unit to metres."""
    try:
        return UNITS_TO_METERS[unit]
    except (KeyError, TypeError):
        raise UnsupportedUnit(unit) from None
