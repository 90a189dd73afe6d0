"""Job postings, the applications providers send to them, and their transitions."""

from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lexlink.api.deps import get_actor, get_current_user, get_db, require_role
from lexlink.api.v1.common import TransitionResponse, commit_and_enqueue, transition_response
from lexlink.common.enums import (
    ApplicationAction,
    ApplicationStatus,
    JobPricingMode,
    PostingAction,
    PostingStatus,
    ProviderType,
    Urgency,
    UserRole,
)
from lexlink.common.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from lexlink.common.pagination import PaginatedResponse, PaginationParams, paginate, paginate_sequence
from lexlink.core.engagement.schemas import Actor
from lexlink.core.engagement.service import EngagementService
from lexlink.config import settings
from lexlink.core.geo.distance import distance_meters, validate_coordinate
from lexlink.core.pricing.currency import MAX_AMOUNT_MINOR, to_display
from lexlink.db.models.job import JobApplication, JobPosting
from lexlink.db.models.provider import ProviderProfile
from lexlink.db.models.user import User

router = APIRouter(tags=["Jobs"])


# ---------- Schemas ----------


class JobPostingCreate(BaseModel):
    title: str
    description: str
    provider_type: ProviderType
    pricing_mode: JobPricingMode = JobPricingMode.FIXED
    budget: int | None = Field(None, ge=0, le=MAX_AMOUNT_MINOR)  # minor units
    hourly_rate: int | None = Field(None, ge=0, le=MAX_AMOUNT_MINOR)  # minor units
    location: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    urgency: Urgency = Urgency.ASAP
    deadline: datetime | None = None


class JobPostingResponse(BaseModel):
    id: uuid.UUID
    client_id: uuid.UUID
    title: str
    description: str
    provider_type: str
    pricing_mode: str
    budget: int | None
    hourly_rate: int | None
    price_display: str
    location: str | None
    latitude: float | None
    longitude: float | None
    urgency: str
    deadline: str | None
    status: str
    created_at: str
    distance_m: float | None = None


class JobPostingListResponse(PaginatedResponse[JobPostingResponse]):
    pass


class ApplicationCreate(BaseModel):
    proposed_price: int = Field(..., ge=0, le=MAX_AMOUNT_MINOR)  # minor units
    proposed_deadline: datetime | None = None
    cover_letter: str | None = None


class ApplicationResponse(BaseModel):
    id: uuid.UUID
    posting_id: uuid.UUID
    provider_id: uuid.UUID
    proposed_price: int
    proposed_price_display: str
    proposed_deadline: str | None
    cover_letter: str | None
    status: str
    created_at: str


class PostingTransitionRequest(BaseModel):
    action: PostingAction


class ApplicationTransitionRequest(BaseModel):
    action: ApplicationAction


# ---------- Job postings ----------


@router.post("/jobs", response_model=JobPostingResponse, status_code=201)
async def create_job_posting(
    body: JobPostingCreate,
    current_user: User = Depends(require_role(UserRole.CLIENT, UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    if body.pricing_mode == JobPricingMode.FIXED and (body.budget is None or body.budget < 100):
        raise ValidationError("Fixed-price jobs need a budget of at least 1 unit (100 minor units)")
    if body.pricing_mode == JobPricingMode.HOURLY and (body.hourly_rate is None or body.hourly_rate < 100):
        raise ValidationError("Hourly jobs need an hourly rate of at least 1 unit (100 minor units)")
    if (body.latitude is None) != (body.longitude is None):
        raise ValidationError("latitude and longitude must be given together")
    if body.latitude is not None:
        validate_coordinate(body.latitude, body.longitude)
    if body.urgency == Urgency.SPECIFIC_DATE and body.deadline is None:
        raise ValidationError("A deadline is required for specific_date urgency")

    posting = JobPosting(
        client_id=current_user.id,
        title=body.title,
        description=body.description,
        provider_type=body.provider_type.value,
        pricing_mode=body.pricing_mode.value,
        budget=body.budget,
        hourly_rate=body.hourly_rate,
        location=body.location,
        latitude=body.latitude,
        longitude=body.longitude,
        urgency=body.urgency.value,
        deadline=body.deadline,
        status=PostingStatus.OPEN.value,
        status_history=[],
    )
    db.add(posting)
    await db.flush()
    await db.refresh(posting)

    return _posting_response(posting, current_user.country)


@router.get("/jobs", response_model=JobPostingListResponse)
async def list_job_postings(
    provider_type: ProviderType | None = None,
    status: PostingStatus | None = PostingStatus.OPEN,
    mine: bool = False,
    lat: float | None = None,
    lng: float | None = None,
    radius_m: float | None = Query(None, gt=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    params: PaginationParams = Depends(),
):
    if (lat is None) != (lng is None):
        raise ValidationError("lat and lng must be given together")
    query = select(JobPosting).where(JobPosting.is_deleted.is_(False))
    if mine:
        query = query.where(JobPosting.client_id == current_user.id)
    if provider_type is not None:
        query = query.where(JobPosting.provider_type == provider_type.value)
    if status is not None:
        query = query.where(JobPosting.status == status.value)
    query = query.order_by(JobPosting.created_at.desc())

    if lat is not None:
        return await _nearby_postings(db, query, lat, lng, radius_m, current_user.country, params)

    items, total = await paginate(db, query, params)
    return JobPostingListResponse(
        items=[_posting_response(p, current_user.country) for p in items],
        total=total,
        page=params.page,
        page_size=params.page_size,
        total_pages=params.total_pages(total),
    )


@router.get("/jobs/{posting_id}", response_model=JobPostingResponse)
async def get_job_posting(
    posting_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    posting = await _get_posting(posting_id, db)
    return _posting_response(posting, current_user.country)


@router.post("/jobs/{posting_id}/transitions", response_model=TransitionResponse)
async def transition_job_posting(
    posting_id: uuid.UUID,
    body: PostingTransitionRequest,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    result = await EngagementService().transition_posting(db, posting_id, body.action, actor)
    await commit_and_enqueue(db, result.side_effects)
    return transition_response(result)


# ---------- Applications ----------


@router.post("/jobs/{posting_id}/applications", response_model=ApplicationResponse, status_code=201)
async def apply_to_job(
    posting_id: uuid.UUID,
    body: ApplicationCreate,
    current_user: User = Depends(get_current_user),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    application, effects = await EngagementService().create_application(
        db,
        actor,
        posting_id,
        proposed_price=body.proposed_price,
        proposed_deadline=body.proposed_deadline,
        cover_letter=body.cover_letter,
    )
    await commit_and_enqueue(db, effects)
    return _application_response(application, current_user.country)


@router.get("/jobs/{posting_id}/applications", response_model=list[ApplicationResponse])
async def list_applications(
    posting_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    posting = await _get_posting(posting_id, db)
    if current_user.role != UserRole.ADMIN.value and posting.client_id != current_user.id:
        raise PermissionDeniedError("Only the client who posted this job can see its applications")

    result = await db.execute(
        select(JobApplication)
        .where(JobApplication.posting_id == posting_id, JobApplication.is_deleted.is_(False))
        .order_by(JobApplication.created_at)
    )
    return [_application_response(a, current_user.country) for a in result.scalars().all()]


@router.get("/applications", response_model=list[ApplicationResponse])
async def list_my_applications(
    status: ApplicationStatus | None = None,
    current_user: User = Depends(require_role(UserRole.PROVIDER)),
    db: AsyncSession = Depends(get_db),
):
    """Applications sent by the calling provider, newest first."""
    query = (
        select(JobApplication)
        .join(ProviderProfile, JobApplication.provider_id == ProviderProfile.id)
        .where(ProviderProfile.user_id == current_user.id, JobApplication.is_deleted.is_(False))
    )
    if status is not None:
        query = query.where(JobApplication.status == status.value)
    result = await db.execute(query.order_by(JobApplication.created_at.desc()))
    return [_application_response(a, current_user.country) for a in result.scalars().all()]


@router.post("/applications/{application_id}/transitions", response_model=TransitionResponse)
async def transition_application(
    application_id: uuid.UUID,
    body: ApplicationTransitionRequest,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    result = await EngagementService().transition_application(db, application_id, body.action, actor)
    await commit_and_enqueue(db, result.side_effects)
    return transition_response(result)


async def _nearby_postings(
    db: AsyncSession,
    query,
    lat: float,
    lng: float,
    radius_m: float | None,
    currency: str | None,
    params: PaginationParams,
) -> JobPostingListResponse:
    validate_coordinate(lat, lng)
    radius = radius_m if radius_m is not None else settings.DEFAULT_SEARCH_RADIUS_M

    # Postings without coordinates are never "nearby"
    result = await db.execute(query.where(JobPosting.latitude.is_not(None), JobPosting.longitude.is_not(None)))
    nearby = []
    for posting in result.scalars().all():
        distance = distance_meters(lat, lng, posting.latitude, posting.longitude)
        if distance <= radius:
            nearby.append((distance, posting))
    nearby.sort(key=lambda pair: pair[0])

    page, total = paginate_sequence(nearby, params)
    items = []
    for distance, posting in page:
        response = _posting_response(posting, currency)
        response.distance_m = round(distance, 1)
        items.append(response)
    return JobPostingListResponse(
        items=items,
        total=total,
        page=params.page,
        page_size=params.page_size,
        total_pages=params.total_pages(total),
    )


async def _get_posting(posting_id: uuid.UUID, db: AsyncSession) -> JobPosting:
    result = await db.execute(
        select(JobPosting).where(JobPosting.id == posting_id, JobPosting.is_deleted.is_(False))
    )
    posting = result.scalar_one_or_none()
    if not posting:
        raise NotFoundError("Job posting", str(posting_id))
    return posting


def _posting_response(posting: JobPosting, currency: str | None) -> JobPostingResponse:
    if posting.pricing_mode == JobPricingMode.HOURLY.value:
        price_display = f"{to_display(posting.hourly_rate, currency)}/h"
    else:
        price_display = to_display(posting.budget, currency)
    return JobPostingResponse(
        id=posting.id,
        client_id=posting.client_id,
        title=posting.title,
        description=posting.description,
        provider_type=posting.provider_type,
        pricing_mode=posting.pricing_mode,
        budget=posting.budget,
        hourly_rate=posting.hourly_rate,
        price_display=price_display,
        location=posting.location,
        latitude=posting.latitude,
        longitude=posting.longitude,
        urgency=posting.urgency,
        deadline=posting.deadline.isoformat() if posting.deadline else None,
        status=posting.status,
        created_at=posting.created_at.isoformat(),
    )


def _application_response(application: JobApplication, currency: str | None) -> ApplicationResponse:
    return ApplicationResponse(
        id=application.id,
        posting_id=application.posting_id,
        provider_id=application.provider_id,
        proposed_price=application.proposed_price,
        proposed_price_display=to_display(application.proposed_price, currency),
        proposed_deadline=application.proposed_deadline.isoformat() if application.proposed_deadline else None,
        cover_letter=application.cover_letter,
        status=application.status,
        created_at=application.created_at.isoformat(),
    )
