import pytest

from directory.services.distance_service import distance_penalty, haversine_km


def test_haversine_zero_distance():
    assert haversine_km(44.0, -93.0, 44.0, -93.0) == 0


def test_haversine_one_degree_of_longitude_at_equator():
    assert haversine_km(0.0, 0.0, 0.0, 1.0) == pytest.approx(111.2, rel=0.01)


def test_haversine_is_symmetric():
    forward = haversine_km(39.7817, -89.6501, 38.6270, -90.1994)
    backward = haversine_km(38.6270, -90.1994, 39.7817, -89.6501)
    assert forward == pytest.approx(backward)


@pytest.mark.parametrize(
    ("distance_km", "expected"),
    [
        (0.0, 0.0),
        (3.0, 4.5),
        (5.0, 7.5),
        (10.0, 17.5),
        (20.0, 37.5),
        (24.0, 47.5),
    ],
)
def test_distance_penalty_tiers(distance_km, expected):
    assert distance_penalty(distance_km) == pytest.approx(expected)


def test_distance_penalty_is_continuous_at_tier_boundaries():
    assert distance_penalty(5.0 + 1e-9) == pytest.approx(distance_penalty(5.0), abs=1e-6)
    assert distance_penalty(20.0 + 1e-9) == pytest.approx(distance_penalty(20.0), abs=1e-6)
