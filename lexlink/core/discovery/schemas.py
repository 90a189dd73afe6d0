from __future__ import annotations

import uuid

from pydantic import BaseModel, Field, model_validator

from lexlink.common.enums import PricingMode, ProviderType, RadiusPolicy, SortPreference
from lexlink.common.exceptions import ValidationError
from lexlink.core.geo.distance import validate_coordinate


class GeoPoint(BaseModel):
    lat: float
    lng: float

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_range(self) -> GeoPoint:
        validate_coordinate(self.lat, self.lng)
        return self


class ServiceOffering(BaseModel):
    service_id: uuid.UUID | None = None
    title: str = ""
    pricing_mode: PricingMode
    price: int | None = None  # minor units; hourly rate for hourly services
    percentage_rate: int | None = None
    min_price: int | None = None  # minor units; floor for percentage services

    model_config = {"frozen": True}

    @property
    def starting_price(self) -> int | None:
        if self.pricing_mode == PricingMode.PERCENTAGE:
            return self.min_price
        return self.price


class ProviderCandidate(BaseModel):
    provider_id: uuid.UUID
    name: str = ""
    provider_type: ProviderType
    location: GeoPoint | None = None
    service_radius_m: int | None = None
    is_24_7: bool = False
    rating: float | None = None
    review_count: int = 0
    completed_services: int = 0
    is_top_rated: bool = False
    specializations: frozenset[str] = frozenset()
    services: tuple[ServiceOffering, ...] = ()

    model_config = {"frozen": True}

    @property
    def min_service_price(self) -> int | None:
        prices = [s.starting_price for s in self.services if s.starting_price is not None]
        return min(prices) if prices else None


class SearchFilter(BaseModel):
    provider_type: ProviderType | None = None
    specializations: frozenset[str] = frozenset()
    location: GeoPoint | None = None
    radius_m: int | None = None
    max_price: int | None = None
    min_rating: float | None = None
    sort_by: SortPreference = SortPreference.RATING
    radius_policy: RadiusPolicy | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_consistency(self) -> SearchFilter:
        if (self.location is None) != (self.radius_m is None):
            raise ValidationError("location and radius_m must be given together")
        if self.radius_m is not None and self.radius_m < 0:
            raise ValidationError("radius_m must not be negative")
        if self.max_price is not None and self.max_price < 0:
            raise ValidationError("max_price must not be negative")
        if self.min_rating is not None and not 0 <= self.min_rating <= 5:
            raise ValidationError("min_rating must be between 0 and 5")
        return self

    @property
    def is_location_scoped(self) -> bool:
        return self.location is not None and self.radius_m is not None


class RankedProvider(BaseModel):
    provider: ProviderCandidate
    distance_m: float | None = None
    min_price: int | None = None

    @property
    def is_top_rated(self) -> bool:
        return self.provider.is_top_rated

    @property
    def is_24_7(self) -> bool:
        return self.provider.is_24_7


class SearchResult(BaseModel):
    results: list[RankedProvider] = Field(default_factory=list)
    total: int = 0
