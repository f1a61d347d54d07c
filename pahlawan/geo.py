"""Geographic cell indexing and the region seed script."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import Iterable, Sequence

from .s2cell import CellID, get_shard_id

_SEED_HALF_SIZE = 0.01


@dataclass
class S2Engine:
    """Maps coordinates to cell ids at a fixed level (15 is about 200 m)."""

    level: int = 15

    def cell_id(self, lat: float, lon: float) -> int:
        """Return the cell id containing the location."""
        return int(CellID.from_lat_lng(lat, lon).parent(self.level))

    def nearby_cells(self, lat: float, lon: float) -> list[int]:
        """Return the location's cell followed by all its neighbours."""
        center = CellID.from_lat_lng(lat, lon).parent(self.level)
        return [int(center), *(int(n) for n in center.all_neighbors(self.level))]


@dataclass(frozen=True)
class City:
    name: str
    lat: float
    lon: float


INDONESIAN_CITIES: tuple[City, ...] = (
    City("Jakarta", -6.2088, 106.8456),
    City("Surabaya", -7.2575, 112.7521),
    City("Bandung", -6.9175, 107.6191),
    City("Medan", 3.5952, 98.6722),
    City("Semarang", -6.9667, 110.4167),
    City("Makassar", -5.1476, 119.4327),
    City("Palembang", -2.9761, 104.7754),
    City("Tangerang", -6.1783, 106.6319),
    City("South Tangerang", -6.2886, 106.7179),
    City("Depok", -6.4025, 106.7942),
    City("Batam", 1.1281, 104.0322),
    City("Bogor", -6.5971, 106.7986),
    City("Padang", -0.9471, 100.4172),
    City("Pekanbaru", 0.5071, 101.4478),
    City("Malang", -7.9839, 112.6214),
    City("Samarinda", -0.4949, 117.1492),
    City("Pontianak", -0.0263, 109.3425),
    City("Banjarmasin", -3.3167, 114.5917),
    City("Denpasar", -8.6705, 115.2126),
    City("Yogyakarta", -7.7956, 110.3695),
    City("Manado", 1.4748, 124.8421),
    City("Ambon", -3.6954, 128.1814),
    City("Jayapura", -2.5337, 140.7181),
)


def _bbox_wkt(city: City) -> str:
    d = _SEED_HALF_SIZE
    corners = [
        (city.lon - d, city.lat - d),
        (city.lon + d, city.lat - d),
        (city.lon + d, city.lat + d),
        (city.lon - d, city.lat + d),
        (city.lon - d, city.lat - d),
    ]
    return "POLYGON((" + ", ".join(f"{x:f} {y:f}" for x, y in corners) + "))"


def seed_regions_sql(cities: Iterable[City]) -> str:
    """Return an SQL script inserting each city as a small geo-region."""
    cities = list(cities)
    lines = [
        "-- Seed major Indonesian cities as geo-regions",
        "INSERT INTO geo_regions (region_name, s2_cell_id, geometry) VALUES",
    ]
    for index, city in enumerate(cities):
        terminator = ";" if index == len(cities) - 1 else ","
        name = city.name.replace("'", "''")
        cell_id = get_shard_id(city.lat, city.lon)
        lines.append(
            f"('{name}', {cell_id}, ST_GeogFromText('{_bbox_wkt(city)}')){terminator}"
        )
    return "\n".join(lines) + "\n"


def main(argv: Sequence[str] | None = None) -> int:
    """Print the region seed script for the major Indonesian cities."""
    parser = argparse.ArgumentParser(
        description="Print SQL that seeds major Indonesian cities as geo-regions."
    )
    parser.parse_args(argv)
    print(seed_regions_sql(INDONESIAN_CITIES), end="")
    return 0