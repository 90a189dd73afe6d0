from __future__ import annotations

import uuid
from collections.abc import Collection, Iterable

from lexlink.common.enums import BookingStatus
from lexlink.common.exceptions import (
    ConflictError,
    InvalidTransitionError,
    PermissionDeniedError,
    ValidationError,
)

MIN_RATING = 1
MAX_RATING = 5


def check_review_allowed(
    booking_status: BookingStatus,
    reviewer_id: uuid.UUID,
    client_id: uuid.UUID,
    provider_user_id: uuid.UUID,
    existing_reviewer_ids: Collection[uuid.UUID],
    rating: int,
) -> uuid.UUID:
    """Return the reviewee for a review ``reviewer_id`` wants to leave on a booking."""
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(f"rating must be between {MIN_RATING} and {MAX_RATING}")
    if BookingStatus(booking_status) != BookingStatus.COMPLETED:
        raise InvalidTransitionError(
            "booking", BookingStatus(booking_status).value, "review", reason="booking is not completed"
        )
    if reviewer_id not in (client_id, provider_user_id):
        raise PermissionDeniedError("Only booking participants may leave a review")
    if reviewer_id in existing_reviewer_ids:
        raise ConflictError("You have already reviewed this booking")
    return provider_user_id if reviewer_id == client_id else client_id


def mean_rating(ratings: Iterable[int]) -> float:
    values = list(ratings)
    if not values:
        return 0.0
    return round(sum(values) / len(values), 2)
