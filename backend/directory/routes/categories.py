from fastapi import APIRouter, Depends, Path, Query

from ..dependencies import get_ranking_service, get_reference_data_provider
from ..schemas import CategoryView, SearchResponse
from ..services.ranking_service import RankingService
from ..services.reference_data import ReferenceDataProvider

router = APIRouter(tags=["categories"])


@router.get("/categories", response_model=list[CategoryView])
def list_categories(
    reference_data: ReferenceDataProvider = Depends(get_reference_data_provider),
) -> list[CategoryView]:
    return [CategoryView(name=category.name, slug=category.slug) for category in reference_data.categories()]


@router.get("/categories/{category}/{state}/{city}", response_model=SearchResponse)
def ranked_businesses(
    category: str = Path(min_length=1, max_length=120),
    state: str = Path(pattern=r"^[A-Za-z]{2}$"),
    city: str = Path(min_length=1, max_length=120),
    page: int = Query(default=1, ge=1),
    ranking: RankingService = Depends(get_ranking_service),
) -> SearchResponse:
    return ranking.query(category, state, city, page)
