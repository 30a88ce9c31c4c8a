"""Delivery regions and the cities served in each."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Region:
    id: int
    name: str


@dataclass(frozen=True)
class City:
    id: int
    name: str
    region_id: int


REGIONS: tuple[Region, ...] = (
    Region(1, "Greater Accra"),
    Region(2, "Ashanti"),
    Region(3, "Western"),
    Region(4, "Eastern"),
    Region(5, "Northern"),
)

CITIES: tuple[City, ...] = (
    City(1, "Accra", 1),
    City(2, "Tema", 1),
    City(3, "Kumasi", 2),
    City(4, "Obuasi", 2),
    City(5, "Takoradi", 3),
)


def get_region(region_id: int) -> Region | None:
    return next((r for r in REGIONS if r.id == region_id), None)


def get_city(city_id: int) -> City | None:
    return next((c for c in CITIES if c.id == city_id), None)


def cities_in_region(region_id: int) -> list[City]:
    return [c for c in CITIES if c.region_id == region_id]
