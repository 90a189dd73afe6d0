import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lexlink.common.enums import PricingMode, ProviderType, RadiusPolicy
from lexlink.common.exceptions import InvalidCoordinateError, NotFoundError
from lexlink.common.logging import get_logger
from lexlink.core.discovery.ranker import rank
from lexlink.core.discovery.schemas import (
    GeoPoint,
    ProviderCandidate,
    RankedProvider,
    SearchFilter,
    ServiceOffering,
)
from lexlink.db.models.provider import ProviderProfile

logger = get_logger("discovery.service")


def to_candidate(profile: ProviderProfile) -> ProviderCandidate:
    location = None
    if profile.latitude is not None and profile.longitude is not None:
        try:
            location = GeoPoint(lat=profile.latitude, lng=profile.longitude)
        except InvalidCoordinateError:
            logger.warning("Provider %s has invalid coordinates; treating as unlocated", profile.id)

    return ProviderCandidate(
        provider_id=profile.id,
        name=profile.user.full_name if profile.user else "",
        provider_type=ProviderType(profile.provider_type),
        location=location,
        service_radius_m=profile.service_radius_m,
        is_24_7=profile.is_24_7,
        rating=profile.rating if profile.review_count else None,
        review_count=profile.review_count,
        completed_services=profile.completed_services,
        is_top_rated=profile.is_top_rated,
        specializations=frozenset(s.name for s in profile.specializations),
        services=tuple(
            ServiceOffering(
                service_id=s.id,
                title=s.title,
                pricing_mode=PricingMode(s.pricing_mode),
                price=s.price,
                percentage_rate=s.percentage_rate,
                min_price=s.min_price,
            )
            for s in profile.services
            if not s.is_deleted
        ),
    )


class ProviderSearchService:
    async def search(
        self,
        search_filter: SearchFilter,
        db: AsyncSession,
        radius_policy: RadiusPolicy | None = None,
    ) -> list[RankedProvider]:
        query = select(ProviderProfile).where(ProviderProfile.is_deleted.is_(False))
        if search_filter.provider_type is not None:
            query = query.where(ProviderProfile.provider_type == search_filter.provider_type.value)

        result = await db.execute(query)
        profiles = result.scalars().all()

        ranked = rank((to_candidate(p) for p in profiles), search_filter, radius_policy)
        logger.info(
            "Provider search: %d candidates, %d matches (type=%s, scoped=%s)",
            len(profiles),
            len(ranked),
            search_filter.provider_type.value if search_filter.provider_type else "any",
            search_filter.is_location_scoped,
        )
        return ranked

    async def get_provider(self, provider_id: uuid.UUID, db: AsyncSession) -> ProviderProfile:
        result = await db.execute(
            select(ProviderProfile).where(
                ProviderProfile.id == provider_id, ProviderProfile.is_deleted.is_(False)
            )
        )
        profile = result.scalar_one_or_none()
        if not profile:
            raise NotFoundError("Provider", str(provider_id))
        return profile
