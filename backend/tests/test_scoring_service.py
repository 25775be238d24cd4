import math

import pytest

from directory.models import Business
from directory.services.scoring_service import score_business

TARGET = (39.7817, -89.6501)
ZIPS = frozenset({"62701", "62702"})


def _business(**overrides) -> Business:
    fields = {
        "provider_id": "place-1",
        "slug": "test-business",
        "name": "Test Business",
        "city": "Springfield",
        "state": "Illinois",
        "zip": None,
        "latitude": TARGET[0],
        "longitude": TARGET[1],
        "rating_value": None,
        "rating_count": 0,
        "is_claimed": False,
        "website_url": None,
        "work_hours": None,
    }
    fields.update(overrides)
    return Business(**fields)


def test_base_score_at_target_without_signals():
    assert score_business(_business(), *TARGET, False, ZIPS) == pytest.approx(50.0)


def test_zip_and_exact_city_bonuses():
    business = _business(zip="62701")
    assert score_business(business, *TARGET, True, ZIPS) == pytest.approx(50 + 40 + 30)


def test_zip_outside_set_earns_nothing():
    assert score_business(_business(zip="60601"), *TARGET, False, ZIPS) == pytest.approx(50.0)


def test_quality_signals():
    business = _business(
        rating_value=4.5,
        rating_count=16,
        is_claimed=True,
        website_url="https://example.com",
        work_hours={"timetable": {"monday": [{"open": {"hour": 9, "minute": 0}, "close": {"hour": 17, "minute": 0}}]}},
    )
    expected = 50 + 9 + math.log2(16) + 3 + 2 + 2
    assert score_business(business, *TARGET, False, ZIPS) == pytest.approx(expected)


def test_rating_and_review_bonuses_are_capped():
    business = _business(rating_value=5.0, rating_count=10_000)
    assert score_business(business, *TARGET, False, ZIPS) == pytest.approx(50 + 10 + 5)


def test_single_review_adds_nothing():
    assert score_business(_business(rating_count=1), *TARGET, False, ZIPS) == pytest.approx(50.0)


def test_explicit_distance_applies_penalty():
    business = _business()
    assert score_business(business, *TARGET, False, ZIPS, distance_km=3.0) == pytest.approx(50 - 4.5)
    assert score_business(business, *TARGET, False, ZIPS, distance_km=15.0) == pytest.approx(50 - 27.5)


def test_score_non_increasing_with_distance_within_a_tier():
    business = _business(rating_value=4.0, rating_count=8)
    for low, high in [(0.5, 4.5), (6.0, 19.0), (21.0, 40.0)]:
        near = score_business(business, *TARGET, True, ZIPS, distance_km=low)
        far = score_business(business, *TARGET, True, ZIPS, distance_km=high)
        assert near >= far


def test_scoring_requires_coordinates_when_distance_unknown():
    with pytest.raises(ValueError):
        score_business(_business(latitude=None), *TARGET, False, ZIPS)


@pytest.mark.parametrize(
    "work_hours",
    [
        {"timetable": None},
        {"timetable": {"monday": None, "tuesday": []}},
        {"current_status": "open"},
    ],
)
def test_hours_without_any_window_earn_nothing(work_hours):
    assert score_business(_business(work_hours=work_hours), *TARGET, False, ZIPS) == pytest.approx(50.0)
