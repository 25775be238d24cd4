import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from directory.errors import RepositoryError
from directory.models import Business, BusinessSecondaryCategory, ProviderUsageLog
from directory.services.business_repository import NormalizedBusiness


def _record(provider_id="place-1", slug="joes-pizza-main-st-springfield", **overrides) -> NormalizedBusiness:
    fields = {
        "provider_id": provider_id,
        "slug": slug,
        "name": "Joe's Pizza",
        "city": "Springfield",
        "state": "Illinois",
        "primary_category": "Pizza restaurant",
        "secondary_categories": ["Italian restaurant"],
        "street": "123 Main Street",
        "zip": "62701",
        "latitude": 39.78,
        "longitude": -89.65,
        "rating_value": 4.2,
        "rating_count": 40,
        "query_category": "Pizza restaurant",
        "query_state": "Illinois",
        "query_city": "Springfield",
    }
    fields.update(overrides)
    return NormalizedBusiness(**fields)


def test_upsert_inserts_then_updates_in_place(repository, db_session):
    first_id = repository.upsert(_record())
    repository.commit()
    second_id = repository.upsert(
        _record(name="Joe's Pizza & Pasta", rating_value=4.8, secondary_categories=["Pasta shop"], query_city="Chatham")
    )
    repository.commit()

    assert first_id == second_id
    assert db_session.execute(select(func.count()).select_from(Business)).scalar_one() == 1

    business = repository.get_by_slug("joes-pizza-main-st-springfield")
    assert business.name == "Joe's Pizza & Pasta"
    assert business.rating_value == 4.8
    assert business.secondary_category_names == ["Pasta shop"]
    # provenance keeps the first ingest
    assert business.query_city == "Springfield"


def test_upsert_keeps_existing_slug_when_name_changes(repository):
    repository.upsert(_record())
    repository.upsert(_record(slug="joes-famous-pizza-main-st-springfield", name="Joe's Famous Pizza"))
    repository.commit()

    assert repository.get_by_slug("joes-pizza-main-st-springfield").name == "Joe's Famous Pizza"
    assert repository.get_by_slug("joes-famous-pizza-main-st-springfield") is None


def test_upsert_suffixes_colliding_slugs(repository):
    repository.upsert(_record(provider_id="place-1"))
    repository.upsert(_record(provider_id="place-2"))
    repository.upsert(_record(provider_id="place-3"))
    repository.commit()

    assert repository.get_by_slug("joes-pizza-main-st-springfield").provider_id == "place-1"
    assert repository.get_by_slug("joes-pizza-main-st-springfield-2").provider_id == "place-2"
    assert repository.get_by_slug("joes-pizza-main-st-springfield-3").provider_id == "place-3"


def test_upsert_deduplicates_secondary_categories(repository, db_session):
    business_id = repository.upsert(_record(secondary_categories=["Bar", "Bar", " ", "Pizza Takeout"]))
    repository.commit()

    rows = db_session.execute(
        select(BusinessSecondaryCategory.category)
        .where(BusinessSecondaryCategory.business_id == business_id)
        .order_by(BusinessSecondaryCategory.category)
    ).scalars().all()
    assert rows == ["Bar", "Pizza Takeout"]


def test_get_by_slug_falls_back_to_case_insensitive_match(repository):
    repository.upsert(_record())
    repository.commit()

    assert repository.get_by_slug("Joes-Pizza-Main-St-Springfield").provider_id == "place-1"
    assert repository.get_by_slug("unknown-slug") is None


def test_find_candidates_matches_primary_case_insensitively(repository):
    repository.upsert(_record(provider_id="upper", slug="upper", primary_category="PIZZA RESTAURANT"))
    repository.upsert(_record(provider_id="other-state", slug="other-state", state="Missouri"))
    repository.commit()

    found = repository.find_candidates("Illinois", "pizza restaurant")
    assert [business.provider_id for business in found] == ["upper"]


def test_find_candidates_matches_secondary_categories_exactly(repository):
    repository.upsert(
        _record(provider_id="exact", slug="exact", primary_category="Italian restaurant", secondary_categories=["Pizza restaurant"])
    )
    repository.upsert(
        _record(provider_id="odd-case", slug="odd-case", primary_category="Italian restaurant", secondary_categories=["pizza Restaurant"])
    )
    repository.commit()

    found = repository.find_candidates("Illinois", "Pizza restaurant")
    assert [business.provider_id for business in found] == ["exact"]


def test_find_candidates_excludes_missing_coordinates(repository):
    repository.upsert(_record(provider_id="no-lat", slug="no-lat", latitude=None))
    repository.upsert(_record(provider_id="no-lng", slug="no-lng", longitude=None))
    repository.upsert(_record(provider_id="ok", slug="ok"))
    repository.commit()

    found = repository.find_candidates("Illinois", "Pizza restaurant")
    assert [business.provider_id for business in found] == ["ok"]


def test_related_fills_from_three_passes(repository):
    anchor_id = repository.upsert(_record(provider_id="anchor", slug="anchor"))
    repository.upsert(_record(provider_id="same-city", slug="same-city"))
    repository.upsert(
        _record(provider_id="secondary", slug="secondary", primary_category="Bar", secondary_categories=["Pizza restaurant"])
    )
    repository.upsert(_record(provider_id="same-state", slug="same-state", city="Chatham"))
    repository.upsert(_record(provider_id="elsewhere", slug="elsewhere", city="St. Louis", state="Missouri"))
    repository.upsert(_record(provider_id="unrelated", slug="unrelated", primary_category="Bar", secondary_categories=[]))
    repository.commit()

    anchor = repository.get_by_slug("anchor")
    assert anchor.id == anchor_id
    related = repository.related(anchor, limit=8)
    assert [business.provider_id for business in related] == ["same-city", "secondary", "same-state"]

    assert [business.provider_id for business in repository.related(anchor, limit=2)] == ["same-city", "secondary"]


def test_record_provider_usage(repository, db_session):
    repository.record_provider_usage(
        provider="fake", keyword="Plumber Springfield IL", records_returned=12, estimated_cost=0.002, succeeded=True
    )

    row = db_session.execute(select(ProviderUsageLog)).scalar_one()
    assert row.keyword == "Plumber Springfield IL"
    assert row.records_returned == 12
    assert row.succeeded is True


def test_datastore_failures_are_wrapped(repository, db_session, monkeypatch):
    def _broken_execute(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database is gone"))

    monkeypatch.setattr(db_session, "execute", _broken_execute)

    with pytest.raises(RepositoryError) as excinfo:
        repository.find_candidates("Illinois", "Pizza restaurant")
    assert isinstance(excinfo.value.__cause__, OperationalError)
