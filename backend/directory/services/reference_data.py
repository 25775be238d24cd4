from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Protocol

from ..config import settings
from .slug_service import normalize_city
from .states import state_abbreviation

logger = logging.getLogger(__name__)

CATEGORIES_FILE = "categories.csv"
LOCATIONS_FILE = "locations.csv"


@dataclass(frozen=True)
class Category:
    name: str
    slug: str


@dataclass(frozen=True)
class LocationRecord:
    city: str
    state: str
    state_abbr: str
    latitude: float
    longitude: float
    zip_codes: frozenset[str]

    @property
    def city_key(self) -> str:
        return normalize_city(self.city)


class ReferenceDataProvider(Protocol):
    def categories(self) -> list[Category]:
        ...

    def locations(self) -> list[LocationRecord]:
        ...

    def find_category(self, slug: str) -> Category | None:
        ...

    def find_location(self, city: str, state: str) -> LocationRecord | None:
        ...

    def cities_in_state(self, state: str) -> list[LocationRecord]:
        ...


class ReferenceData:
    def __init__(self, categories: Iterable[Category], locations: Iterable[LocationRecord]) -> None:
        self._categories = list(categories)
        self._locations = list(locations)
        self._category_by_slug: dict[str, Category] = {}
        for category in self._categories:
            self._category_by_slug.setdefault(category.slug.strip().lower(), category)

        self._location_by_key: dict[tuple[str, str], LocationRecord] = {}
        self._locations_by_state: dict[str, list[LocationRecord]] = {}
        for location in self._locations:
            key = (location.city_key, location.state_abbr.upper())
            self._location_by_key.setdefault(key, location)
            self._locations_by_state.setdefault(location.state_abbr.upper(), []).append(location)

    def categories(self) -> list[Category]:
        return list(self._categories)

    def locations(self) -> list[LocationRecord]:
        return list(self._locations)

    def find_category(self, slug: str) -> Category | None:
        return self._category_by_slug.get(slug.strip().lower())

    def find_location(self, city: str, state: str) -> LocationRecord | None:
        abbr = state_abbreviation(state)
        if abbr is None:
            return None
        return self._location_by_key.get((normalize_city(city), abbr))

    def cities_in_state(self, state: str) -> list[LocationRecord]:
        abbr = state_abbreviation(state)
        if abbr is None:
            return []
        return sorted(self._locations_by_state.get(abbr, []), key=lambda item: item.city.lower())


def _read_rows(path: Path) -> list[dict[str, str]]:
    with path.open("r", encoding="utf-8", newline="") as handle:
        return [row for row in csv.DictReader(handle) if any((value or "").strip() for value in row.values())]


def parse_zip_codes(raw: str | None) -> frozenset[str]:
    if not raw:
        return frozenset()
    return frozenset(token for token in raw.split() if token)


def load_categories(path: Path) -> list[Category]:
    categories: list[Category] = []
    for row in _read_rows(path):
        name = (row.get("name") or "").strip()
        slug = (row.get("slug") or "").strip()
        if not name or not slug:
            continue
        categories.append(Category(name=name, slug=slug))
    return categories


def load_locations(path: Path) -> list[LocationRecord]:
    locations: list[LocationRecord] = []
    skipped = 0
    for row in _read_rows(path):
        city = (row.get("city") or "").strip()
        state = (row.get("state") or "").strip()
        state_abbr = (row.get("state_abbr") or "").strip().upper()
        try:
            latitude = float(row.get("lat") or "")
            longitude = float(row.get("lng") or "")
        except ValueError:
            skipped += 1
            continue
        if not city or not state or not state_abbr:
            skipped += 1
            continue
        locations.append(
            LocationRecord(
                city=city,
                state=state,
                state_abbr=state_abbr,
                latitude=latitude,
                longitude=longitude,
                zip_codes=parse_zip_codes(row.get("zips")),
            )
        )
    if skipped:
        logger.warning("Skipped %s malformed location rows in %s", skipped, path)
    return locations


def load_reference_data(data_dir: Path) -> ReferenceData:
    categories = load_categories(data_dir / CATEGORIES_FILE)
    locations = load_locations(data_dir / LOCATIONS_FILE)
    logger.info("Loaded reference data: categories=%s locations=%s", len(categories), len(locations))
    return ReferenceData(categories, locations)


@lru_cache(maxsize=1)
def get_reference_data() -> ReferenceData:
    return load_reference_data(Path(settings.reference_data_dir))
