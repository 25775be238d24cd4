from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .providers import BusinessDataProvider
from .services.business_repository import BusinessRepository
from .services.business_service import BusinessService
from .services.fetch_ledger import FetchLedger
from .services.ingestion_service import IngestionService
from .services.ranking_service import RankingService
from .services.reference_data import ReferenceDataProvider, get_reference_data


def get_reference_data_provider() -> ReferenceDataProvider:
    return get_reference_data()


def get_provider(request: Request) -> BusinessDataProvider | None:
    return getattr(request.app.state, "provider", None)


def get_business_repository(db: Session = Depends(get_db)) -> BusinessRepository:
    return BusinessRepository(db)


def get_fetch_ledger(db: Session = Depends(get_db)) -> FetchLedger:
    return FetchLedger(db, ttl_days=settings.fetch_ledger_ttl_days)


def get_ingestion_service(
    provider: BusinessDataProvider | None = Depends(get_provider),
    repository: BusinessRepository = Depends(get_business_repository),
    ledger: FetchLedger = Depends(get_fetch_ledger),
) -> IngestionService:
    return IngestionService(
        provider,
        repository,
        ledger,
        cost_per_request=settings.provider_cost_per_request_usd,
        default_country_code=settings.default_country_code,
    )


def get_ranking_service(
    reference_data: ReferenceDataProvider = Depends(get_reference_data_provider),
    repository: BusinessRepository = Depends(get_business_repository),
    ingestion: IngestionService = Depends(get_ingestion_service),
) -> RankingService:
    return RankingService(
        reference_data,
        repository,
        ingestion,
        page_size=settings.results_per_page,
        max_distance_km=settings.max_search_distance_km,
    )


def get_business_service(repository: BusinessRepository = Depends(get_business_repository)) -> BusinessService:
    return BusinessService(repository, related_limit=settings.related_results_limit)
