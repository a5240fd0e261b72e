from __future__ import annotations

import math
import re
from typing import Union


_DMS_RE = re.compile(
    r"""^\s*
    (?P<hem>[NSEW])?\s*
    (?P<deg>\d{1,3})\s*°\s*
    (?P<min>\d{1,2})\s*'\s*
    (?P<sec>\d+(?:\.\d+)?)\s*"\s*
    (?P<hem_suffix>[NSEW])?\s*
    $""",
    re.VERBOSE | re.IGNORECASE,
)

_AXIS_HEMISPHERES = {"lat": "NS", "lon": "EW"}
_AXIS_LIMITS = {"lat": 90.0, "lon": 180.0}


def dms_to_decimal(dms: str) -> float:
    """
    Convert strings like:
      N59°26'13.20"  -> 59.43700
      24°45'13.0"E   -> 24.75361...
      S24°17'00.52919" -> -24.28348033...
    """
    m = _DMS_RE.match(dms)
    if not m:
        raise ValueError(f"Bad DMS format: {dms!r}")
    if m.group("hem") and m.group("hem_suffix"):
        raise ValueError(f"Hemisphere given twice: {dms!r}")

    hem = (m.group("hem") or m.group("hem_suffix") or "").upper()
    deg = float(m.group("deg"))
    minute = float(m.group("min"))
    sec = float(m.group("sec"))
    if minute >= 60.0 or sec >= 60.0:
        raise ValueError(f"Minutes and seconds must be below 60: {dms!r}")

    dec = deg + minute / 60.0 + sec / 3600.0
    if hem in ("S", "W"):
        dec = -dec
    return dec


def parse_degrees(value: Union[str, float, int], axis: str) -> float:
    """
    Decimal degrees or a DMS string, checked against the axis range.
    axis is "lat" or "lon".
    """
    if axis not in _AXIS_LIMITS:
        raise ValueError(f"Unknown axis: {axis!r}")

    if isinstance(value, str):
        text = value.strip()
        try:
            dec = float(text)
        except ValueError:
            m = _DMS_RE.match(text)
            hem = m and (m.group("hem") or m.group("hem_suffix"))
            if hem and hem.upper() not in _AXIS_HEMISPHERES[axis]:
                raise ValueError(f"Hemisphere {hem!r} is not valid for {axis}: {value!r}")
            dec = dms_to_decimal(text)
    else:
        dec = float(value)

    limit = _AXIS_LIMITS[axis]
    if not math.isfinite(dec) or abs(dec) > limit:
        raise ValueError(f"{axis} out of range [-{limit}, {limit}]: {value!r}")
    return dec
