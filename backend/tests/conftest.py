import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("REQUIRE_PROVIDER_CREDENTIALS", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from directory import models  # noqa: F401
from directory.database import Base
from directory.errors import ProviderUnavailable
from directory.providers import ProviderBusinessRecord
from directory.services.business_repository import BusinessRepository, NormalizedBusiness
from directory.services.reference_data import Category, LocationRecord, ReferenceData

SPRINGFIELD = LocationRecord(
    city="Springfield",
    state="Illinois",
    state_abbr="IL",
    latitude=39.7817,
    longitude=-89.6501,
    zip_codes=frozenset({"62701", "62702", "62703", "62704"}),
)
CHATHAM = LocationRecord(
    city="Chatham",
    state="Illinois",
    state_abbr="IL",
    latitude=39.6761,
    longitude=-89.7043,
    zip_codes=frozenset({"62629"}),
)
ST_LOUIS = LocationRecord(
    city="St. Louis",
    state="Missouri",
    state_abbr="MO",
    latitude=38.6270,
    longitude=-90.1994,
    zip_codes=frozenset({"63101", "63102"}),
)


class FakeProvider:
    provider_name = "fake"

    def __init__(self, records=None, error: Exception | None = None) -> None:
        self.records = [ProviderBusinessRecord.model_validate(item) for item in (records or [])]
        self.error = error
        self.calls: list[tuple[str, str, str]] = []

    def search(self, category: str, city: str, state: str) -> list[ProviderBusinessRecord]:
        self.calls.append((category, city, state))
        if self.error is not None:
            raise self.error
        return list(self.records)


def provider_item(place_id: str, title: str, **overrides) -> dict:
    item = {
        "type": "maps_search",
        "place_id": place_id,
        "title": title,
        "category": "Pizza restaurant",
        "additional_categories": ["Italian restaurant"],
        "address_info": {
            "address": "100 Main Street",
            "city": "Springfield",
            "region": "IL",
            "zip": "62701",
            "country_code": "US",
        },
        "latitude": 39.7817,
        "longitude": -89.6501,
        "rating": {"value": 4.5, "votes_count": 120},
        "is_claimed": False,
    }
    item.update(overrides)
    return item


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = factory()
    yield session
    session.close()


@pytest.fixture()
def repository(db_session):
    return BusinessRepository(db_session)


@pytest.fixture()
def reference_data():
    return ReferenceData(
        [
            Category(name="Pizza restaurant", slug="pizza-restaurant"),
            Category(name="Plumber", slug="plumber"),
        ],
        [SPRINGFIELD, CHATHAM, ST_LOUIS],
    )


@pytest.fixture()
def unavailable_provider():
    return FakeProvider(error=ProviderUnavailable("boom"))


@pytest.fixture()
def add_business(repository):
    counter = {"value": 0}

    def _add(name: str, **overrides) -> int:
        counter["value"] += 1
        fields = {
            "provider_id": f"place-{counter['value']}",
            "slug": f"{name.lower().replace(' ', '-')}-{counter['value']}",
            "name": name,
            "city": "Springfield",
            "state": "Illinois",
            "primary_category": "Pizza restaurant",
            "zip": "62701",
            "latitude": SPRINGFIELD.latitude,
            "longitude": SPRINGFIELD.longitude,
        }
        fields.update(overrides)
        business_id = repository.upsert(NormalizedBusiness(**fields))
        repository.commit()
        return business_id

    return _add
