from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from bimcal.domain.errors import UnknownReferenceSystem


LOCAL_CALIBRATED = "local_calibrated"


@dataclass(frozen=True)
class ReferenceSystem:
    """
    A supported target coordinate reference system.

    epsg_code is None only for the local system, which is projected with a
    transverse Mercator centred at the calibration origin.
    """
    id: str
    name: str
    epsg_code: Optional[int]
    region: str
    country_code: str
    is_active: bool = True

    @property
    def is_local(self) -> bool:
        return self.epsg_code is None


REFERENCE_SYSTEMS: Tuple[ReferenceSystem, ...] = (
    ReferenceSystem(LOCAL_CALIBRATED, "Local system (calibrated)", None, "Any", "LOCAL"),
    ReferenceSystem("ee_lest97", "L-EST97 / Estonian Coordinate System of 1997", 3301, "Estonia", "EE"),
    ReferenceSystem("lv_lks92", "LKS-92 / Latvia TM", 3059, "Latvia", "LV"),
    ReferenceSystem("lt_lks94", "LKS94 / Lithuania TM", 3346, "Lithuania", "LT"),
    ReferenceSystem("fi_tm35fin", "ETRS89 / TM35FIN(E,N)", 3067, "Finland", "FI"),
    ReferenceSystem("se_sweref99tm", "SWEREF99 TM", 3006, "Sweden", "SE"),
    ReferenceSystem("be_lambert72", "Belge 1972 / Belgian Lambert 72", 31370, "Belgium", "BE"),
    ReferenceSystem("be_lambert2008", "ETRS89 / Belgian Lambert 2008", 3812, "Belgium", "BE"),
    ReferenceSystem("wgs84_utm34n", "WGS 84 / UTM zone 34N", 32634, "Europe 18°E to 24°E", "EU"),
    ReferenceSystem("wgs84_utm35n", "WGS 84 / UTM zone 35N", 32635, "Europe 24°E to 30°E", "EU"),
)


def lookup_reference_system(system_id: str) -> ReferenceSystem:
    for system in REFERENCE_SYSTEMS:
        if system.id == system_id:
            return system
    raise UnknownReferenceSystem(system_id)


def list_reference_systems(include_inactive: bool = False) -> List[ReferenceSystem]:
    return [s for s in REFERENCE_SYSTEMS if include_inactive or s.is_active]


def reference_systems_for_country(country_code: str) -> List[ReferenceSystem]:
    """Active systems of one country, in table order (first one is the default)."""
    code = country_code.upper()
    return [s for s in REFERENCE_SYSTEMS if s.country_code == code and s.is_active]
