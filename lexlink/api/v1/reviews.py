import uuid

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from lexlink.api.deps import get_actor, get_db
from lexlink.api.v1.common import commit_and_enqueue
from lexlink.core.engagement.schemas import Actor
from lexlink.core.engagement.service import EngagementService

router = APIRouter(prefix="/bookings/{booking_id}/reviews", tags=["Reviews"])


class ReviewCreate(BaseModel):
    rating: int = Field(..., description="1-5")
    comment: str | None = None


class ReviewResponse(BaseModel):
    id: uuid.UUID
    booking_id: uuid.UUID
    reviewer_id: uuid.UUID
    reviewee_id: uuid.UUID
    rating: int
    comment: str | None
    created_at: str


@router.post("", response_model=ReviewResponse, status_code=201)
async def create_review(
    booking_id: uuid.UUID,
    body: ReviewCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    review, effects = await EngagementService().create_review(
        db, booking_id, actor, rating=body.rating, comment=body.comment
    )
    await commit_and_enqueue(db, effects)
    return ReviewResponse(
        id=review.id,
        booking_id=review.booking_id,
        reviewer_id=review.reviewer_id,
        reviewee_id=review.reviewee_id,
        rating=review.rating,
        comment=review.comment,
        created_at=review.created_at.isoformat(),
    )
