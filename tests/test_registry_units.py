import pytest

from bimcal.core.registry import (
    LOCAL_CALIBRATED,
    REFERENCE_SYSTEMS,
    list_reference_systems,
    lookup_reference_system,
    reference_systems_for_country,
)
from bimcal.core.units import units_to_meters
from bimcal.domain.errors import UnknownReferenceSystem, UnsupportedUnit


class TestUnits:

    @pytest.mark.parametrize(
        "unit, factor",
        [("millimeters", 0.001), ("centimeters", 0.01), ("meters", 1.0)],
    )
    def test_known_units(self, unit, factor):
        assert units_to_meters(unit) == factor

    @pytest.mark.parametrize("unit", ["feet", "Meters", "", None, "mm"])
    def test_unknown_units_fail(self, unit):
        with pytest.raises(UnsupportedUnit) as exc:
            units_to_meters(unit)
        assert exc.value.unit == unit

    def test_unsupported_unit_is_a_value_error(self):
        with pytest.raises(ValueError):
            units_to_meters("inches")


class TestRegistry:

    def test_lookup_epsg_system(self):
        system = lookup_reference_system("ee_lest97")
        assert system.epsg_code == 3301
        assert system.region == "Estonia"
        assert not system.is_local

    def test_lookup_local_system(self):
        system = lookup_reference_system(LOCAL_CALIBRATED)
        assert system.epsg_code is None
        assert system.is_local

    def test_unknown_system(self):
        with pytest.raises(UnknownReferenceSystem, match="nowhere_tm") as exc:
            lookup_reference_system("nowhere_tm")
        assert exc.value.code == "unknown_reference_system"
        assert isinstance(exc.value, LookupError)

    def test_ids_are_unique(self):
        ids = [s.id for s in REFERENCE_SYSTEMS]
        assert len(ids) == len(set(ids))

    def test_systems_for_country(self):
        ids = [s.id for s in reference_systems_for_country("be")]
        assert ids == ["be_lambert72", "be_lambert2008"]
        assert reference_systems_for_country("XX") == []

    def test_list_is_active_only(self):
        assert all(s.is_active for s in list_reference_systems())
        assert len(list_reference_systems(include_inactive=True)) == len(REFERENCE_SYSTEMS)
