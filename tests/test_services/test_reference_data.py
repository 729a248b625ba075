"""Tests for the province and unit reference tables."""

from excel_processor.services.reference_data import (
    get_all_provinces,
    get_province,
    get_units_by_province,
)


class TestProvinces:
    def test_all_provinces(self) -> None:
        provinces = get_all_provinces()

        assert len(provinces) == 10
        assert provinces[0].to_dict() == {"id": 1, "name": "Hà Nội", "code": "HN"}

    def test_ids_are_unique(self) -> None:
        ids = [province.id for province in get_all_provinces()]
        assert len(ids) == len(set(ids))

    def test_get_province(self) -> None:
        assert get_province(2).code == "HCM"
        assert get_province(999) is None


class TestUnits:
    def test_units_belong_to_province(self) -> None:
        units = get_units_by_province(1)

        assert len(units) == 5
        assert all(unit.province_id == 1 for unit in units)
        assert units[0].code == "SGDDT_HN"

    def test_every_unit_references_a_known_province(self) -> None:
        for province in get_all_provinces():
            for unit in get_units_by_province(province.id):
                assert get_province(unit.province_id) is province

    def test_province_without_units(self) -> None:
        assert get_units_by_province(10) == ()

    def test_unknown_province(self) -> None:
        assert get_units_by_province(-1) == ()

    def test_unit_to_dict(self) -> None:
        unit = get_units_by_province(4)[1]
        assert unit.to_dict() == {
            "id": 15,
            "name": "Cảng Hải Phòng",
            "code": "CANG_HP",
            "province_id": 4,
        }
