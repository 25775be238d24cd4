from __future__ import annotations

from typing import Any, Literal, Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ProviderAddress(BaseModel):
    model_config = ConfigDict(extra="ignore")

    address: str | None = None
    city: str | None = None
    region: str | None = None
    zip: str | None = None
    country_code: str | None = None


class ProviderRating(BaseModel):
    model_config = ConfigDict(extra="ignore")

    value: float | None = Field(default=None, ge=0, le=5)
    votes_count: int | None = Field(default=None, ge=0)


class ProviderBusinessRecord(BaseModel):
    """One business as returned by the provider, validated at the ingestion boundary.

    Records that fail validation are rejected one by one; the rest of the
    batch is still ingested.
    """

    model_config = ConfigDict(extra="ignore")

    type: Literal["maps_search"] = "maps_search"
    place_id: str = Field(min_length=1)
    title: str | None = None
    category: str | None = None
    additional_categories: list[str] = Field(default_factory=list)
    address_info: ProviderAddress = Field(default_factory=ProviderAddress)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    phone: str | None = None
    url: str | None = None
    rating: ProviderRating | None = None
    work_hours: dict[str, Any] | None = None
    is_claimed: bool = False
    main_image: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _fill_place_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("place_id") and data.get("cid"):
            return {**data, "place_id": str(data["cid"])}
        return data

    @field_validator("additional_categories", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        if value is None:
            return []
        return value

    @field_validator("address_info", mode="before")
    @classmethod
    def _none_is_blank_address(cls, value: Any) -> Any:
        if value is None:
            return {}
        return value

    @field_validator("is_claimed", mode="before")
    @classmethod
    def _none_is_unclaimed(cls, value: Any) -> Any:
        if value is None:
            return False
        return value


class BusinessDataProvider(Protocol):
    provider_name: str

    def search(self, category: str, city: str, state: str) -> list[ProviderBusinessRecord]:
        """Return every business the provider knows for the query triple.

        Raises ``ProviderUnavailable`` (or ``ProviderAuthError``) on failure.
        """
        ...
