"""Static province and unit reference tables.

The tables are built once at import time and never change; lookups of unknown
ids return None or an empty tuple.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class Province:
    id: int
    name: str
    code: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Unit:
    id: int
    name: str
    code: str
    province_id: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


PROVINCES: tuple[Province, ...] = (
    Province(1, "Hà Nội", "HN"),
    Province(2, "Hồ Chí Minh", "HCM"),
    Province(3, "Đà Nẵng", "DN"),
    Province(4, "Hải Phòng", "HP"),
    Province(5, "An Giang", "AG"),
    Province(6, "Bà Rịa - Vũng Tàu", "BRVT"),
    Province(7, "Bắc Giang", "BG"),
    Province(8, "Bắc Kạn", "BK"),
    Province(9, "Bạc Liêu", "BL"),
    Province(10, "Bắc Ninh", "BN"),
)

_UNITS: tuple[Unit, ...] = (
    Unit(1, "Sở Giáo dục và Đào tạo Hà Nội", "SGDDT_HN", 1),
    Unit(2, "Sở Y tế Hà Nội", "SYT_HN", 1),
    Unit(3, "Sở Tài chính Hà Nội", "STC_HN", 1),
    Unit(4, "UBND Quận Ba Đình", "UBND_BD", 1),
    Unit(5, "UBND Quận Hoàn Kiếm", "UBND_HK", 1),
    Unit(6, "Sở Giáo dục và Đào tạo TP.HCM", "SGDDT_HCM", 2),
    Unit(7, "Sở Y tế TP.HCM", "SYT_HCM", 2),
    Unit(8, "Sở Tài chính TP.HCM", "STC_HCM", 2),
    Unit(9, "UBND Quận 1", "UBND_Q1", 2),
    Unit(10, "UBND Quận 3", "UBND_Q3", 2),
    Unit(11, "Sở Giáo dục và Đào tạo Đà Nẵng", "SGDDT_DN", 3),
    Unit(12, "Sở Y tế Đà Nẵng", "SYT_DN", 3),
    Unit(13, "Sở Du lịch Đà Nẵng", "SDL_DN", 3),
    Unit(14, "Sở Giáo dục và Đào tạo Hải Phòng", "SGDDT_HP", 4),
    Unit(15, "Cảng Hải Phòng", "CANG_HP", 4),
    Unit(16, "Sở Nông nghiệp An Giang", "SNN_AG", 5),
    Unit(17, "Sở Thủy lợi An Giang", "STL_AG", 5),
)

_PROVINCES_BY_ID = MappingProxyType({p.id: p for p in PROVINCES})


def _group_units() -> MappingProxyType[int, tuple[Unit, ...]]:
    grouped: dict[int, list[Unit]] = {}
    for unit in _UNITS:
        grouped.setdefault(unit.province_id, []).append(unit)
    return MappingProxyType({pid: tuple(units) for pid, units in grouped.items()})


_UNITS_BY_PROVINCE = _group_units()


def get_all_provinces() -> tuple[Province, ...]:
    return PROVINCES


def get_province(province_id: int) -> Province | None:
    return _PROVINCES_BY_ID.get(province_id)


def get_units_by_province(province_id: int) -> tuple[Unit, ...]:
    """Units of a province, empty for unknown ids."""
    return _UNITS_BY_PROVINCE.get(province_id, ())
