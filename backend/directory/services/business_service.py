from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable

from ..database import utcnow
from ..errors import BusinessNotFound
from ..models import Business
from ..schemas import BusinessDetail, BusinessSummary, RelatedBusinessesResponse
from .business_repository import BusinessRepository
from .time_service import is_open_now

logger = logging.getLogger(__name__)


def summary_fields(business: Business) -> dict[str, Any]:
    return {
        "slug": business.slug,
        "name": business.name,
        "primary_category": business.primary_category,
        "secondary_categories": business.secondary_category_names,
        "street": business.street,
        "city": business.city,
        "state": business.state,
        "zip": business.zip,
        "country_code": business.country_code,
        "latitude": business.latitude,
        "longitude": business.longitude,
        "phone": business.phone,
        "website_url": business.website_url,
        "rating_value": business.rating_value,
        "rating_count": business.rating_count or 0,
        "is_claimed": bool(business.is_claimed),
        "main_image": business.main_image,
    }


class BusinessService:
    def __init__(
        self,
        repository: BusinessRepository,
        *,
        related_limit: int = 8,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.repository = repository
        self.related_limit = related_limit
        self.clock = clock

    def _require(self, slug: str) -> Business:
        business = self.repository.get_by_slug(slug)
        if business is None:
            raise BusinessNotFound(slug)
        return business

    def get_detail(self, slug: str) -> BusinessDetail:
        business = self._require(slug)
        return BusinessDetail(
            **summary_fields(business),
            work_hours=business.work_hours,
            open_now=is_open_now(business.work_hours, business.state, now_utc=self.clock()),
            query_category=business.query_category,
            query_city=business.query_city,
            query_state=business.query_state,
            created_at=business.created_at,
            updated_at=business.updated_at,
        )

    def get_related(self, slug: str) -> RelatedBusinessesResponse:
        business = self._require(slug)
        related = self.repository.related(business, limit=self.related_limit)
        logger.debug("Found %s businesses related to %s", len(related), business.slug)
        return RelatedBusinessesResponse(
            slug=business.slug,
            businesses=[BusinessSummary(**summary_fields(row)) for row in related],
        )
