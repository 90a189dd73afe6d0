import uuid
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lexlink.api.deps import get_actor, get_current_user, get_db
from lexlink.api.v1.common import TransitionResponse, commit_and_enqueue, transition_response
from lexlink.common.enums import BookingAction, UserRole
from lexlink.common.exceptions import NotFoundError, PermissionDeniedError
from lexlink.common.pagination import PaginatedResponse, PaginationParams, paginate
from lexlink.core.engagement.schemas import Actor
from lexlink.core.engagement.service import EngagementService
from lexlink.core.pricing.currency import MAX_AMOUNT_MINOR, to_display
from lexlink.db.models.booking import Booking
from lexlink.db.models.provider import ProviderProfile
from lexlink.db.models.user import User

router = APIRouter(prefix="/bookings", tags=["Bookings"])


# ---------- Schemas ----------


class BookingCreate(BaseModel):
    provider_id: uuid.UUID
    service_id: uuid.UUID | None = None
    start_time: datetime
    end_time: datetime | None = None
    total_amount: int | None = Field(None, ge=0, le=MAX_AMOUNT_MINOR)  # minor units; defaults to the service price
    notes: str | None = None


class BookingTransitionRequest(BaseModel):
    action: BookingAction


class BookingResponse(BaseModel):
    id: uuid.UUID
    client_id: uuid.UUID
    provider_id: uuid.UUID
    service_id: uuid.UUID | None
    start_time: str
    end_time: str | None
    status: str
    total_amount: int
    platform_fee: int
    total_display: str
    notes: str | None
    status_history: list | None
    created_at: str


class BookingListResponse(PaginatedResponse[BookingResponse]):
    pass


# ---------- Endpoints ----------


@router.post("", response_model=BookingResponse, status_code=201)
async def create_booking(
    body: BookingCreate,
    current_user: User = Depends(get_current_user),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    booking, effects = await EngagementService().create_booking(
        db,
        actor,
        provider_id=body.provider_id,
        start_time=body.start_time,
        end_time=body.end_time,
        service_id=body.service_id,
        total_amount=body.total_amount,
        notes=body.notes,
    )
    await commit_and_enqueue(db, effects)
    return _booking_response(booking, current_user.country)


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    status: str | None = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    params: PaginationParams = Depends(),
):
    query = select(Booking).where(Booking.is_deleted.is_(False))
    if current_user.role == UserRole.PROVIDER.value:
        query = query.join(ProviderProfile, Booking.provider_id == ProviderProfile.id).where(
            ProviderProfile.user_id == current_user.id
        )
    elif current_user.role != UserRole.ADMIN.value:
        query = query.where(Booking.client_id == current_user.id)
    if status:
        query = query.where(Booking.status == status)
    query = query.order_by(Booking.start_time.desc())

    items, total = await paginate(db, query, params)
    return BookingListResponse(
        items=[_booking_response(b, current_user.country) for b in items],
        total=total,
        page=params.page,
        page_size=params.page_size,
        total_pages=params.total_pages(total),
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Booking).where(Booking.id == booking_id, Booking.is_deleted.is_(False))
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFoundError("Booking", str(booking_id))
    if current_user.role != UserRole.ADMIN.value and current_user.id not in (
        booking.client_id,
        booking.provider.user_id,
    ):
        raise PermissionDeniedError("You do not have access to this booking")
    return _booking_response(booking, current_user.country)


@router.post("/{booking_id}/transitions", response_model=TransitionResponse)
async def transition_booking(
    booking_id: uuid.UUID,
    body: BookingTransitionRequest,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    result = await EngagementService().transition_booking(db, booking_id, body.action, actor)
    await commit_and_enqueue(db, result.side_effects)
    return transition_response(result)


def _booking_response(booking: Booking, currency: str | None) -> BookingResponse:
    return BookingResponse(
        id=booking.id,
        client_id=booking.client_id,
        provider_id=booking.provider_id,
        service_id=booking.service_id,
        start_time=booking.start_time.isoformat(),
        end_time=booking.end_time.isoformat() if booking.end_time else None,
        status=booking.status,
        total_amount=booking.total_amount,
        platform_fee=booking.platform_fee,
        total_display=to_display(booking.total_amount, currency),
        notes=booking.notes,
        status_history=booking.status_history,
        created_at=booking.created_at.isoformat(),
    )
