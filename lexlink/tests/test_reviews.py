import uuid

import pytest

from lexlink.common.enums import BookingStatus
from lexlink.common.exceptions import (
    ConflictError,
    InvalidTransitionError,
    PermissionDeniedError,
    ValidationError,
)
from lexlink.core.engagement.reviews import check_review_allowed, mean_rating

CLIENT_ID = uuid.uuid4()
PROVIDER_USER_ID = uuid.uuid4()


def allowed(reviewer_id, status=BookingStatus.COMPLETED, existing=(), rating=5):
    return check_review_allowed(status, reviewer_id, CLIENT_ID, PROVIDER_USER_ID, set(existing), rating)


def test_client_reviews_provider_and_vice_versa():
    assert allowed(CLIENT_ID) == PROVIDER_USER_ID
    assert allowed(PROVIDER_USER_ID) == CLIENT_ID


@pytest.mark.parametrize("status", [BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.CANCELLED])
def test_only_completed_bookings_can_be_reviewed(status):
    with pytest.raises(InvalidTransitionError):
        allowed(CLIENT_ID, status=status)


def test_outsider_cannot_review():
    with pytest.raises(PermissionDeniedError):
        allowed(uuid.uuid4())


def test_second_review_by_same_party_conflicts():
    with pytest.raises(ConflictError):
        allowed(CLIENT_ID, existing=[CLIENT_ID])
    assert allowed(PROVIDER_USER_ID, existing=[CLIENT_ID]) == CLIENT_ID


@pytest.mark.parametrize("rating", [0, 6, -1])
def test_rating_must_be_one_to_five(rating):
    with pytest.raises(ValidationError):
        allowed(CLIENT_ID, rating=rating)


def test_mean_rating():
    assert mean_rating([]) == 0.0
    assert mean_rating([5, 4, 4]) == 4.33
    assert mean_rating([3]) == 3.0
