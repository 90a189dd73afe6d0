"""Filtering and ordering of provider candidates against a search filter."""

from __future__ import annotations

from collections.abc import Iterable

from lexlink.common.enums import RadiusPolicy, SortPreference
from lexlink.common.logging import get_logger
from lexlink.config import settings
from lexlink.core.discovery.schemas import ProviderCandidate, RankedProvider, SearchFilter
from lexlink.core.geo.distance import distance_meters

logger = get_logger("discovery.ranker")


def _matches_type(provider: ProviderCandidate, search_filter: SearchFilter) -> bool:
    return search_filter.provider_type is None or provider.provider_type == search_filter.provider_type


def _matches_specializations(provider: ProviderCandidate, search_filter: SearchFilter) -> bool:
    if not search_filter.specializations:
        return True
    offered = {s.strip().lower() for s in provider.specializations}
    return all(s.strip().lower() in offered for s in search_filter.specializations)


def _within_price(provider: ProviderCandidate, search_filter: SearchFilter) -> bool:
    if search_filter.max_price is None:
        return True
    min_price = provider.min_service_price
    # Unpriced providers ("contact for pricing") stay visible
    return min_price is None or min_price <= search_filter.max_price


def _meets_rating(provider: ProviderCandidate, search_filter: SearchFilter) -> bool:
    if search_filter.min_rating is None:
        return True
    return (provider.rating or 0.0) >= search_filter.min_rating


def _within_radius(
    provider: ProviderCandidate, distance: float, radius_m: int, policy: RadiusPolicy
) -> bool:
    if distance <= radius_m:
        return True
    if policy == RadiusPolicy.FILTER_OR_SERVICE_RADIUS and provider.service_radius_m is not None:
        return distance <= provider.service_radius_m
    return False


def _sort_key(item: RankedProvider, sort_by: SortPreference) -> tuple:
    rating = item.provider.rating or 0.0
    tie_break = (-rating, item.provider.provider_id)
    if sort_by == SortPreference.DISTANCE:
        return (item.distance_m is None, item.distance_m or 0.0, *tie_break)
    if sort_by == SortPreference.PRICE:
        return (item.min_price is None, item.min_price or 0, *tie_break)
    return tie_break


def rank(
    providers: Iterable[ProviderCandidate],
    search_filter: SearchFilter,
    radius_policy: RadiusPolicy | None = None,
) -> list[RankedProvider]:
    """Drop providers failing the filter, then order the rest.

    Ordering is by the filter's sort preference, then rating descending, then
    provider id, so identical input always yields identical output.
    """
    policy = search_filter.radius_policy or radius_policy or RadiusPolicy(settings.RADIUS_POLICY)

    ranked: list[RankedProvider] = []
    for provider in providers:
        if not _matches_type(provider, search_filter):
            continue
        if not _matches_specializations(provider, search_filter):
            continue
        if not _within_price(provider, search_filter):
            continue
        if not _meets_rating(provider, search_filter):
            continue

        distance = None
        if search_filter.is_location_scoped:
            if provider.location is None:
                continue
            distance = distance_meters(
                search_filter.location.lat, search_filter.location.lng,
                provider.location.lat, provider.location.lng,
            )
            if not _within_radius(provider, distance, search_filter.radius_m, policy):
                continue

        ranked.append(
            RankedProvider(
                provider=provider,
                distance_m=round(distance, 1) if distance is not None else None,
                min_price=provider.min_service_price,
            )
        )

    ranked.sort(key=lambda item: _sort_key(item, search_filter.sort_by))

    logger.debug("Ranked %d providers (sort=%s, policy=%s)", len(ranked), search_filter.sort_by.value, policy.value)
    return ranked
