from __future__ import annotations

import logging

from ..errors import ProviderAuthError, ProviderUnavailable
from ..providers import BusinessDataProvider, ProviderBusinessRecord
from ..providers.dataforseo import build_keyword
from ..telemetry import get_current_trace, instrument_stage
from .business_repository import BusinessRepository, NormalizedBusiness
from .fetch_ledger import FetchLedger
from .reference_data import LocationRecord
from .slug_service import build_business_slug
from .states import state_name

logger = logging.getLogger(__name__)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def normalize_record(
    record: ProviderBusinessRecord,
    *,
    query_category: str,
    location: LocationRecord,
    default_country_code: str = "US",
) -> NormalizedBusiness | None:
    name = _clean(record.title)
    address = record.address_info
    city = _clean(address.city)
    if name is None or city is None:
        return None

    street = _clean(address.address)
    try:
        slug = build_business_slug(name, city, street)
    except ValueError:
        return None
    state = state_name(address.region) or location.state
    rating = record.rating
    rating_count = rating.votes_count if rating is not None and rating.votes_count is not None else 0

    return NormalizedBusiness(
        provider_id=record.place_id,
        slug=slug,
        name=name,
        city=city,
        state=state,
        primary_category=_clean(record.category),
        secondary_categories=[category for category in record.additional_categories if category and category.strip()],
        street=street,
        zip=_clean(address.zip),
        country_code=(_clean(address.country_code) or default_country_code).upper(),
        latitude=record.latitude,
        longitude=record.longitude,
        phone=_clean(record.phone),
        website_url=_clean(record.url),
        rating_value=rating.value if rating is not None else None,
        rating_count=rating_count,
        is_claimed=record.is_claimed,
        work_hours=record.work_hours or None,
        main_image=_clean(record.main_image),
        query_category=query_category,
        query_state=location.state,
        query_city=location.city,
    )


class IngestionService:
    def __init__(
        self,
        provider: BusinessDataProvider | None,
        repository: BusinessRepository,
        ledger: FetchLedger,
        *,
        cost_per_request: float = 0.0,
        default_country_code: str = "US",
    ) -> None:
        self.provider = provider
        self.repository = repository
        self.ledger = ledger
        self.cost_per_request = cost_per_request
        self.default_country_code = default_country_code

    @instrument_stage("ingestion")
    def ingest(self, category: str, location: LocationRecord, *, force: bool = False) -> int:
        """Provider failures count as zero records and leave the triple unmarked."""
        if not force and self.ledger.has_fetched(category, location.city, location.state_abbr):
            logger.debug("Fetch ledger hit: category=%r city=%r state=%s", category, location.city, location.state_abbr)
            return 0

        if self.provider is None:
            logger.warning("No business data provider configured; skipping ingestion for %r", category)
            return 0

        keyword = build_keyword(category, location.city, location.state_abbr)
        trace = get_current_trace()
        if trace is not None:
            trace.record_provider_call()

        try:
            records = self.provider.search(category, location.city, location.state_abbr)
        except ProviderAuthError:
            logger.error("Business data provider rejected credentials for keyword=%r", keyword)
            self._record_usage(keyword, 0, succeeded=False)
            return 0
        except ProviderUnavailable as exc:
            logger.warning("Business data provider unavailable for keyword=%r: %s", keyword, exc)
            self._record_usage(keyword, 0, succeeded=False)
            return 0

        self._record_usage(keyword, len(records), succeeded=True)

        transformed: dict[str, NormalizedBusiness] = {}
        skipped = 0
        for record in records:
            business = normalize_record(
                record,
                query_category=category,
                location=location,
                default_country_code=self.default_country_code,
            )
            if business is None:
                skipped += 1
                logger.debug("Skipping provider record %s: no usable name or city", record.place_id)
                continue
            # Last occurrence of a provider id wins.
            transformed[business.provider_id] = business

        for business in transformed.values():
            self.repository.upsert(business)
        self.repository.commit()
        self.ledger.mark_fetched(category, location.city, location.state_abbr)

        logger.info(
            "Ingested %s businesses for keyword=%r (%s skipped, %s duplicates)",
            len(transformed),
            keyword,
            skipped,
            len(records) - skipped - len(transformed),
        )
        return len(transformed)

    def _record_usage(self, keyword: str, records_returned: int, *, succeeded: bool) -> None:
        self.repository.record_provider_usage(
            provider=getattr(self.provider, "provider_name", "unknown"),
            keyword=keyword,
            records_returned=records_returned,
            estimated_cost=self.cost_per_request,
            succeeded=succeeded,
        )
