from __future__ import annotations

import math
from collections.abc import Collection

from ..models import Business
from .distance_service import distance_penalty, haversine_km

BASE_SCORE = 50.0
ZIP_MATCH_BONUS = 40.0
EXACT_CITY_BONUS = 30.0
RATING_MULTIPLIER = 2.0
MAX_RATING_BONUS = 10.0
MAX_REVIEW_COUNT_BONUS = 5.0
CLAIMED_BONUS = 3.0
WEBSITE_BONUS = 2.0
HOURS_BONUS = 2.0


def has_structured_hours(work_hours: dict | None) -> bool:
    timetable = (work_hours or {}).get("timetable")
    if not isinstance(timetable, dict):
        return False
    return any(isinstance(windows, list) and windows for windows in timetable.values())


def quality_bonus(business: Business) -> float:
    bonus = 0.0
    if business.rating_value is not None:
        bonus += min(business.rating_value * RATING_MULTIPLIER, MAX_RATING_BONUS)
    if business.rating_count and business.rating_count > 0:
        bonus += min(math.log2(business.rating_count), MAX_REVIEW_COUNT_BONUS)
    if business.is_claimed:
        bonus += CLAIMED_BONUS
    if business.website_url:
        bonus += WEBSITE_BONUS
    if has_structured_hours(business.work_hours):
        bonus += HOURS_BONUS
    return bonus


def score_business(
    business: Business,
    target_lat: float,
    target_lng: float,
    is_exact_city_match: bool,
    zip_set: Collection[str],
    distance_km: float | None = None,
) -> float:
    if distance_km is None:
        if business.latitude is None or business.longitude is None:
            raise ValueError("Cannot score a business without coordinates")
        distance_km = haversine_km(target_lat, target_lng, business.latitude, business.longitude)

    score = BASE_SCORE
    if business.zip and business.zip in zip_set:
        score += ZIP_MATCH_BONUS
    if is_exact_city_match:
        score += EXACT_CITY_BONUS
    score -= distance_penalty(distance_km)
    score += quality_bonus(business)
    return score
