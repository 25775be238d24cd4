from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from ..database import utcnow
from ..errors import CategoryNotFound
from ..models import Business
from ..schemas import BusinessListing, ResultType, SearchResponse
from ..telemetry import get_current_trace, timed_stage
from .business_repository import BusinessRepository
from .business_service import summary_fields
from .distance_service import haversine_km
from .ingestion_service import IngestionService
from .location_service import LocationResolver
from .reference_data import LocationRecord, ReferenceDataProvider
from .scoring_service import score_business
from .slug_service import normalize_city
from .time_service import is_open_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoredBusiness:
    business: Business
    distance_km: float
    score: float
    is_exact_city_match: bool
    is_in_zip_set: bool

    @property
    def result_type(self) -> ResultType:
        # Zip-only matches are reported through related_count, not per listing.
        return "exact" if self.is_exact_city_match else "nearby"

    def sort_key(self) -> tuple[float, float, str, str]:
        return (-self.score, self.distance_km, self.business.name.lower(), self.business.provider_id)


@dataclass(frozen=True)
class MatchCounts:
    total: int
    exact: int
    zip_matches: int

    @property
    def related(self) -> int:
        return self.zip_matches - self.exact

    @property
    def nearby(self) -> int:
        return self.total - self.exact


def score_candidates(
    candidates: list[Business],
    location: LocationRecord,
    max_distance_km: float,
) -> list[ScoredBusiness]:
    scored: list[ScoredBusiness] = []
    for business in candidates:
        if business.latitude is None or business.longitude is None:
            continue
        distance_km = haversine_km(location.latitude, location.longitude, business.latitude, business.longitude)
        if distance_km > max_distance_km:
            continue

        is_exact_city_match = normalize_city(business.city) == location.city_key
        is_in_zip_set = bool(business.zip) and business.zip in location.zip_codes
        scored.append(
            ScoredBusiness(
                business=business,
                distance_km=distance_km,
                score=score_business(
                    business,
                    location.latitude,
                    location.longitude,
                    is_exact_city_match,
                    location.zip_codes,
                    distance_km=distance_km,
                ),
                is_exact_city_match=is_exact_city_match,
                is_in_zip_set=is_in_zip_set,
            )
        )

    scored.sort(key=ScoredBusiness.sort_key)
    return scored


def count_matches(scored: list[ScoredBusiness]) -> MatchCounts:
    return MatchCounts(
        total=len(scored),
        exact=sum(1 for item in scored if item.is_exact_city_match),
        zip_matches=sum(1 for item in scored if item.is_in_zip_set),
    )


class RankingService:
    def __init__(
        self,
        reference_data: ReferenceDataProvider,
        repository: BusinessRepository,
        ingestion: IngestionService,
        *,
        page_size: int = 10,
        max_distance_km: float = 20.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.reference_data = reference_data
        self.locations = LocationResolver(reference_data)
        self.repository = repository
        self.ingestion = ingestion
        self.page_size = page_size
        self.max_distance_km = max_distance_km
        self.clock = clock

    def query(self, category_slug: str, state: str, city: str, page: int = 1) -> SearchResponse:
        if page < 1:
            raise ValueError("page must be >= 1")

        category = self.reference_data.find_category(category_slug)
        if category is None:
            raise CategoryNotFound(category_slug)
        location = self.locations.resolve(city, state)

        trace = get_current_trace()
        if trace is not None:
            trace.mark_query(category.name, location.city, location.state_abbr, page)

        self.ingestion.ingest(category.name, location)

        with timed_stage("db"):
            candidates = self.repository.find_candidates(location.state, category.name)

        with timed_stage("ranking"):
            scored = score_candidates(candidates, location, self.max_distance_km)
            counts = count_matches(scored)
            start = (page - 1) * self.page_size
            page_items = scored[start : start + self.page_size]
            now = self.clock()
            listings = [
                BusinessListing(
                    **summary_fields(item.business),
                    rank=start + offset + 1,
                    work_hours=item.business.work_hours,
                    distance_km=round(item.distance_km, 3),
                    score=round(item.score, 3),
                    is_exact_city_match=item.is_exact_city_match,
                    is_in_zip_set=item.is_in_zip_set,
                    result_type=item.result_type,
                    open_now=is_open_now(item.business.work_hours, item.business.state, now_utc=now),
                )
                for offset, item in enumerate(page_items)
            ]

        if trace is not None:
            trace.set_result_count(counts.total)

        logger.info(
            "Ranked %s %r businesses near %s, %s (candidates=%s exact=%s zip=%s page=%s)",
            counts.total,
            category.name,
            location.city,
            location.state_abbr,
            len(candidates),
            counts.exact,
            counts.zip_matches,
            page,
        )

        return SearchResponse(
            category=category.name,
            category_slug=category.slug,
            city=location.city,
            state=location.state,
            state_abbr=location.state_abbr,
            businesses=listings,
            total_count=counts.total,
            exact_count=counts.exact,
            related_count=counts.related,
            nearby_count=counts.nearby,
            current_page=page,
            total_pages=math.ceil(counts.total / self.page_size),
            page_size=self.page_size,
            has_next=page * self.page_size < counts.total,
            has_prev=page > 1,
            request_id=str(trace.request_id) if trace is not None else None,
        )
