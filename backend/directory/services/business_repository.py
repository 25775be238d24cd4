from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator

from sqlalchemy import delete, func, insert, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import dialect_insert
from ..errors import RepositoryError
from ..models import Business, BusinessSecondaryCategory, ProviderUsageLog
from .slug_service import category_display_form, with_slug_suffix

logger = logging.getLogger(__name__)

MAX_SLUG_ATTEMPTS = 50

# Columns rewritten when an already-known provider record is ingested again.
# Slug and provenance (query_*, created_at) keep their first-ingest values.
_MUTABLE_COLUMNS: tuple[str, ...] = (
    "name",
    "primary_category",
    "street",
    "city",
    "state",
    "zip",
    "country_code",
    "latitude",
    "longitude",
    "phone",
    "website_url",
    "rating_value",
    "rating_count",
    "is_claimed",
    "work_hours",
    "main_image",
)


@dataclass
class NormalizedBusiness:
    provider_id: str
    slug: str
    name: str
    city: str
    state: str
    primary_category: str | None = None
    secondary_categories: list[str] = field(default_factory=list)
    street: str | None = None
    zip: str | None = None
    country_code: str = "US"
    latitude: float | None = None
    longitude: float | None = None
    phone: str | None = None
    website_url: str | None = None
    rating_value: float | None = None
    rating_count: int = 0
    is_claimed: bool = False
    work_hours: dict[str, Any] | None = None
    main_image: str | None = None
    query_category: str | None = None
    query_state: str | None = None
    query_city: str | None = None

    def column_values(self) -> dict[str, Any]:
        values = {name: getattr(self, name) for name in _MUTABLE_COLUMNS}
        values.update(
            provider_id=self.provider_id,
            slug=self.slug,
            query_category=self.query_category,
            query_state=self.query_state,
            query_city=self.query_city,
        )
        return values


@contextmanager
def _repository_errors(db: Session, action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Repository failure while trying to %s", action)
        raise RepositoryError(f"Failed to {action}") from exc


class BusinessRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _unique_slug(self, slug: str, provider_id: str) -> str:
        candidate = slug
        for attempt in range(2, MAX_SLUG_ATTEMPTS + 2):
            owner = self.db.execute(select(Business.provider_id).where(Business.slug == candidate)).scalar_one_or_none()
            if owner is None or owner == provider_id:
                return candidate
            candidate = with_slug_suffix(slug, attempt)
        raise RepositoryError(f"Could not allocate a unique slug for {slug!r}")

    def upsert(self, business: NormalizedBusiness) -> int:
        with _repository_errors(self.db, f"upsert business {business.provider_id}"):
            existing_slug = self.db.execute(
                select(Business.slug).where(Business.provider_id == business.provider_id)
            ).scalar_one_or_none()

            values = business.column_values()
            values["slug"] = existing_slug or self._unique_slug(business.slug, business.provider_id)

            insert_stmt = dialect_insert(self.db, Business).values(**values)
            update_values: dict[str, Any] = {name: insert_stmt.excluded[name] for name in _MUTABLE_COLUMNS}
            update_values["updated_at"] = func.now()
            self.db.execute(insert_stmt.on_conflict_do_update(index_elements=["provider_id"], set_=update_values))

            business_id = self.db.execute(
                select(Business.id).where(Business.provider_id == business.provider_id)
            ).scalar_one()

            self.db.execute(delete(BusinessSecondaryCategory).where(BusinessSecondaryCategory.business_id == business_id))
            categories = list(dict.fromkeys(name.strip() for name in business.secondary_categories if name and name.strip()))
            if categories:
                self.db.execute(
                    insert(BusinessSecondaryCategory),
                    [{"business_id": business_id, "category": name} for name in categories],
                )
        return business_id

    def commit(self) -> None:
        with _repository_errors(self.db, "commit business batch"):
            self.db.commit()

    def find_candidates(self, state: str, category: str) -> list[Business]:
        """The primary category is compared case-insensitively. Secondary
        categories are compared exactly against the first-letter-capitalized
        form ("Pizza restaurant"), so a secondary category stored as
        "pizza Restaurant" does not match. Records without both coordinates
        are never returned.
        """
        secondary_ids = select(BusinessSecondaryCategory.business_id).where(
            BusinessSecondaryCategory.category == category_display_form(category)
        )
        stmt = (
            select(Business)
            .where(Business.state == state)
            .where(Business.latitude.is_not(None))
            .where(Business.longitude.is_not(None))
            .where(
                or_(
                    func.lower(Business.primary_category) == category.strip().lower(),
                    Business.id.in_(secondary_ids),
                )
            )
            .order_by(Business.id.asc())
        )
        with _repository_errors(self.db, "query candidate businesses"):
            return list(self.db.execute(stmt).scalars().all())

    def get_by_slug(self, slug: str) -> Business | None:
        with _repository_errors(self.db, f"load business {slug}"):
            business = self.db.execute(select(Business).where(Business.slug == slug)).scalar_one_or_none()
            if business is not None:
                return business

            fallback_stmt = (
                select(Business)
                .where(func.lower(Business.slug) == slug.strip().lower())
                .order_by(Business.id.asc())
                .limit(1)
            )
            business = self.db.execute(fallback_stmt).scalar_one_or_none()
        if business is not None:
            logger.debug("Resolved business slug %r case-insensitively to %r", slug, business.slug)
        return business

    def related(self, business: Business, limit: int = 8) -> list[Business]:
        if not business.primary_category or limit <= 0:
            return []

        results: list[Business] = []
        seen_ids = {business.id}

        def _take(stmt) -> None:
            remaining = limit - len(results)
            if remaining <= 0:
                return
            stmt = stmt.where(Business.id.not_in(sorted(seen_ids))).order_by(Business.id.asc()).limit(remaining)
            for row in self.db.execute(stmt).scalars().all():
                seen_ids.add(row.id)
                results.append(row)

        secondary_ids = select(BusinessSecondaryCategory.business_id).where(
            BusinessSecondaryCategory.category == business.primary_category
        )
        with _repository_errors(self.db, f"load businesses related to {business.slug}"):
            _take(
                select(Business)
                .where(Business.city == business.city)
                .where(Business.state == business.state)
                .where(Business.primary_category == business.primary_category)
            )
            _take(
                select(Business)
                .where(Business.city == business.city)
                .where(Business.state == business.state)
                .where(
                    or_(
                        Business.primary_category.is_(None),
                        Business.primary_category != business.primary_category,
                    )
                )
                .where(Business.id.in_(secondary_ids))
            )
            _take(
                select(Business)
                .where(Business.state == business.state)
                .where(Business.city != business.city)
                .where(Business.primary_category == business.primary_category)
            )
        return results

    def record_provider_usage(
        self,
        *,
        provider: str,
        keyword: str,
        records_returned: int,
        estimated_cost: float,
        succeeded: bool,
    ) -> None:
        with _repository_errors(self.db, "record provider usage"):
            self.db.add(
                ProviderUsageLog(
                    provider=provider,
                    keyword=keyword,
                    records_returned=records_returned,
                    estimated_cost=estimated_cost,
                    succeeded=succeeded,
                )
            )
            self.db.commit()
