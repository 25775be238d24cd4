from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

ResultType = Literal["exact", "related", "nearby"]


class BusinessSummary(BaseModel):
    slug: str
    name: str
    primary_category: str | None = None
    secondary_categories: list[str] = Field(default_factory=list)
    street: str | None = None
    city: str
    state: str
    zip: str | None = None
    country_code: str = "US"
    latitude: float | None = None
    longitude: float | None = None
    phone: str | None = None
    website_url: str | None = None
    rating_value: float | None = Field(default=None, ge=0, le=5)
    rating_count: int = Field(default=0, ge=0)
    is_claimed: bool = False
    main_image: str | None = None


class BusinessListing(BusinessSummary):
    rank: int = Field(ge=1)
    work_hours: dict[str, Any] | None = None
    distance_km: float = Field(ge=0)
    score: float
    is_exact_city_match: bool
    is_in_zip_set: bool
    result_type: ResultType
    open_now: bool


class SearchResponse(BaseModel):
    category: str
    category_slug: str
    city: str
    state: str
    state_abbr: str
    businesses: list[BusinessListing]
    total_count: int
    exact_count: int
    # zip matches minus exact matches; may be negative and is never clamped
    related_count: int
    nearby_count: int
    current_page: int
    total_pages: int
    page_size: int
    has_next: bool
    has_prev: bool
    request_id: str | None = None


class BusinessDetail(BusinessSummary):
    work_hours: dict[str, Any] | None = None
    open_now: bool
    query_category: str | None = None
    query_city: str | None = None
    query_state: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class RelatedBusinessesResponse(BaseModel):
    slug: str
    businesses: list[BusinessSummary]


class CategoryView(BaseModel):
    name: str
    slug: str


class LocationView(BaseModel):
    city: str
    slug: str
    state: str
    state_abbr: str
    latitude: float
    longitude: float
    zip_codes: list[str]


class StateLocationsResponse(BaseModel):
    state: str
    state_abbr: str
    locations: list[LocationView]


class HealthResponse(BaseModel):
    status: str
    database: str
