import uuid

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lexlink.api.deps import get_db
from lexlink.common.enums import PricingMode, ProviderType, RadiusPolicy, SortPreference
from lexlink.common.exceptions import ValidationError
from lexlink.common.pagination import PaginatedResponse, PaginationParams, paginate_sequence
from lexlink.config import settings
from lexlink.core.discovery.schemas import GeoPoint, RankedProvider, SearchFilter
from lexlink.core.discovery.service import ProviderSearchService
from lexlink.core.pricing.currency import get_currency, to_display
from lexlink.db.models.booking import Review

router = APIRouter(prefix="/providers", tags=["Providers"])


# ---------- Schemas ----------


class ProviderSearchRequest(BaseModel):
    provider_type: ProviderType | None = None
    specializations: list[str] = []
    lat: float | None = None
    lng: float | None = None
    radius_m: int | None = None
    max_price: int | None = None  # minor units of the base currency
    min_rating: float | None = None
    sort_by: SortPreference = SortPreference.RATING
    radius_policy: RadiusPolicy | None = None
    currency: str | None = None


class ProviderResult(BaseModel):
    id: uuid.UUID
    name: str
    provider_type: ProviderType
    rating: float
    review_count: int
    completed_services: int
    specializations: list[str]
    distance_m: float | None
    starting_price: int | None
    starting_price_display: str
    is_top_rated: bool
    is_24_7: bool
    latitude: float | None
    longitude: float | None
    service_radius_m: int | None


class ProviderSearchResponse(PaginatedResponse[ProviderResult]):
    currency: str


class ServiceResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str | None
    pricing_mode: PricingMode
    price: int | None
    percentage_rate: int | None
    min_price: int | None
    price_display: str


class ProviderDetailResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    provider_type: ProviderType
    description: str | None
    education: str | None
    years_of_experience: int | None
    languages: list | None
    location: str | None
    latitude: float | None
    longitude: float | None
    service_radius_m: int | None
    working_hours: dict | None
    is_24_7: bool
    is_top_rated: bool
    rating: float
    review_count: int
    completed_services: int
    specializations: list[str]
    services: list[ServiceResponse]


class ReviewResponse(BaseModel):
    id: uuid.UUID
    booking_id: uuid.UUID
    reviewer_id: uuid.UUID
    rating: int
    comment: str | None
    created_at: str


# ---------- Endpoints ----------


@router.post("/search", response_model=ProviderSearchResponse)
async def search_providers(
    body: ProviderSearchRequest,
    db: AsyncSession = Depends(get_db),
    params: PaginationParams = Depends(),
):
    search_filter = _build_filter(body)
    ranked = await ProviderSearchService().search(search_filter, db)
    page, total = paginate_sequence(ranked, params)

    currency = get_currency(body.currency or settings.DEFAULT_DISPLAY_CURRENCY)
    return ProviderSearchResponse(
        items=[_result(item, currency.code) for item in page],
        total=total,
        page=params.page,
        page_size=params.page_size,
        total_pages=params.total_pages(total),
        currency=currency.code,
    )


@router.get("/{provider_id}", response_model=ProviderDetailResponse)
async def get_provider(
    provider_id: uuid.UUID,
    currency: str | None = Query(None, description="Display currency or country code"),
    db: AsyncSession = Depends(get_db),
):
    profile = await ProviderSearchService().get_provider(provider_id, db)
    return ProviderDetailResponse(
        id=profile.id,
        user_id=profile.user_id,
        name=profile.user.full_name if profile.user else "",
        provider_type=ProviderType(profile.provider_type),
        description=profile.description,
        education=profile.education,
        years_of_experience=profile.years_of_experience,
        languages=profile.languages,
        location=profile.location,
        latitude=profile.latitude,
        longitude=profile.longitude,
        service_radius_m=profile.service_radius_m,
        working_hours=profile.working_hours,
        is_24_7=profile.is_24_7,
        is_top_rated=profile.is_top_rated,
        rating=profile.rating,
        review_count=profile.review_count,
        completed_services=profile.completed_services,
        specializations=sorted(s.name for s in profile.specializations),
        services=[
            ServiceResponse(
                id=s.id,
                title=s.title,
                description=s.description,
                pricing_mode=PricingMode(s.pricing_mode),
                price=s.price,
                percentage_rate=s.percentage_rate,
                min_price=s.min_price,
                price_display=_service_price_display(s.pricing_mode, s.price, s.percentage_rate, s.min_price, currency),
            )
            for s in profile.services
            if not s.is_deleted
        ],
    )


@router.get("/{provider_id}/reviews", response_model=list[ReviewResponse])
async def list_provider_reviews(
    provider_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    profile = await ProviderSearchService().get_provider(provider_id, db)
    result = await db.execute(
        select(Review)
        .where(Review.reviewee_id == profile.user_id, Review.is_deleted.is_(False))
        .order_by(Review.created_at.desc())
    )
    return [
        ReviewResponse(
            id=r.id,
            booking_id=r.booking_id,
            reviewer_id=r.reviewer_id,
            rating=r.rating,
            comment=r.comment,
            created_at=r.created_at.isoformat(),
        )
        for r in result.scalars().all()
    ]


def _build_filter(body: ProviderSearchRequest) -> SearchFilter:
    if (body.lat is None) != (body.lng is None):
        raise ValidationError("lat and lng must be given together")

    location = GeoPoint(lat=body.lat, lng=body.lng) if body.lat is not None else None
    radius_m = body.radius_m
    if location is not None and radius_m is None:
        radius_m = settings.DEFAULT_SEARCH_RADIUS_M
    if location is None and radius_m is not None:
        raise ValidationError("radius_m requires lat and lng")

    return SearchFilter(
        provider_type=body.provider_type,
        specializations=frozenset(body.specializations),
        location=location,
        radius_m=radius_m,
        max_price=body.max_price,
        min_rating=body.min_rating,
        sort_by=body.sort_by,
        radius_policy=body.radius_policy,
    )


def _result(item: RankedProvider, currency_code: str) -> ProviderResult:
    provider = item.provider
    return ProviderResult(
        id=provider.provider_id,
        name=provider.name,
        provider_type=provider.provider_type,
        rating=provider.rating or 0.0,
        review_count=provider.review_count,
        completed_services=provider.completed_services,
        specializations=sorted(provider.specializations),
        distance_m=item.distance_m,
        starting_price=item.min_price,
        starting_price_display=(
            to_display(item.min_price, currency_code) if item.min_price is not None else "Contact for pricing"
        ),
        is_top_rated=item.is_top_rated,
        is_24_7=item.is_24_7,
        latitude=provider.location.lat if provider.location else None,
        longitude=provider.location.lng if provider.location else None,
        service_radius_m=provider.service_radius_m,
    )


def _service_price_display(
    pricing_mode: str, price: int | None, percentage_rate: int | None, min_price: int | None, currency: str | None
) -> str:
    if pricing_mode == PricingMode.PERCENTAGE.value:
        label = f"{percentage_rate or 0}%"
        if min_price is not None:
            label += f" (min {to_display(min_price, currency)})"
        return label
    if price is None:
        return "Contact for pricing"
    if pricing_mode == PricingMode.HOURLY.value:
        return f"{to_display(price, currency)}/h"
    return to_display(price, currency)
