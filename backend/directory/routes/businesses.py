from fastapi import APIRouter, Depends

from ..dependencies import get_business_service
from ..schemas import BusinessDetail, RelatedBusinessesResponse
from ..services.business_service import BusinessService

router = APIRouter(tags=["businesses"])


@router.get("/businesses/{slug}", response_model=BusinessDetail)
def business_detail(slug: str, service: BusinessService = Depends(get_business_service)) -> BusinessDetail:
    return service.get_detail(slug)


@router.get("/businesses/{slug}/related", response_model=RelatedBusinessesResponse)
def related_businesses(
    slug: str,
    service: BusinessService = Depends(get_business_service),
) -> RelatedBusinessesResponse:
    return service.get_related(slug)
