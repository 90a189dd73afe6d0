"""Storage side of the engagement lifecycle.

Each operation loads the affected rows with ``SELECT ... FOR UPDATE`` inside the
caller's transaction, runs the pure state machine and writes the outcome back.
Committing or rolling back is left to the caller (the request session or task).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lexlink.common.enums import (
    ActorRole,
    ApplicationAction,
    ApplicationStatus,
    BookingAction,
    BookingStatus,
    PostingAction,
    PostingStatus,
    PricingMode,
    SideEffectKind,
)
from lexlink.common.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from lexlink.common.logging import get_logger
from lexlink.config import settings
from lexlink.core.engagement import booking as booking_machine
from lexlink.core.engagement import jobs as job_machine
from lexlink.core.engagement.reviews import check_review_allowed, mean_rating
from lexlink.core.engagement.schemas import (
    Actor,
    ApplicationSnapshot,
    BookingSnapshot,
    GroupTransitionResult,
    PostingSnapshot,
    SideEffect,
    TransitionResult,
)
from lexlink.core.pricing.currency import platform_fee
from lexlink.db.models.booking import Booking, Review
from lexlink.db.models.job import JobApplication, JobPosting
from lexlink.db.models.provider import ProviderProfile, ProviderService

logger = get_logger("engagement.service")


def booking_snapshot(booking: Booking) -> BookingSnapshot:
    return BookingSnapshot(
        booking_id=booking.id,
        status=BookingStatus(booking.status),
        client_id=booking.client_id,
        provider_id=booking.provider_id,
        provider_user_id=booking.provider.user_id,
        start_time=booking.start_time,
        end_time=booking.end_time,
    )


def posting_snapshot(posting: JobPosting) -> PostingSnapshot:
    return PostingSnapshot(
        posting_id=posting.id,
        status=PostingStatus(posting.status),
        client_id=posting.client_id,
        title=posting.title,
    )


def application_snapshot(application: JobApplication) -> ApplicationSnapshot:
    return ApplicationSnapshot(
        application_id=application.id,
        posting_id=application.posting_id,
        status=ApplicationStatus(application.status),
        provider_id=application.provider_id,
        provider_user_id=application.provider.user_id,
    )


class EngagementService:
    # ---------- Bookings ----------

    async def create_booking(
        self,
        db: AsyncSession,
        actor: Actor,
        provider_id: uuid.UUID,
        start_time: datetime,
        end_time: datetime | None = None,
        service_id: uuid.UUID | None = None,
        total_amount: int | None = None,
        notes: str | None = None,
    ) -> tuple[Booking, list[SideEffect]]:
        if actor.role not in (ActorRole.CLIENT, ActorRole.ADMIN):
            raise PermissionDeniedError("Only clients can create bookings")
        start_time = booking_machine.as_utc(start_time)
        end_time = booking_machine.as_utc(end_time) if end_time is not None else None
        if end_time is not None and end_time <= start_time:
            raise ValidationError("end_time must be after start_time")

        provider = await self._get_provider(db, provider_id)

        if service_id is not None:
            service = next((s for s in provider.services if s.id == service_id and not s.is_deleted), None)
            if service is None:
                raise NotFoundError("Service", str(service_id))
            if total_amount is None:
                total_amount = self._default_amount(service)

        total_amount = total_amount or 0
        if total_amount < 0:
            raise ValidationError("total_amount must not be negative")

        booking = Booking(
            client_id=actor.user_id,
            provider_id=provider.id,
            service_id=service_id,
            start_time=start_time,
            end_time=end_time,
            status=BookingStatus.PENDING.value,
            total_amount=total_amount,
            platform_fee=platform_fee(total_amount),
            notes=notes,
            status_history=[],
        )
        db.add(booking)
        await db.flush()
        await db.refresh(booking)

        logger.info("Booking %s created for provider %s", booking.id, provider.id)
        snapshot = BookingSnapshot(
            booking_id=booking.id,
            status=BookingStatus.PENDING,
            client_id=booking.client_id,
            provider_id=provider.id,
            provider_user_id=provider.user_id,
            start_time=booking.start_time,
            end_time=booking.end_time,
        )
        return booking, booking_machine.booking_created_effects(snapshot)

    async def transition_booking(
        self,
        db: AsyncSession,
        booking_id: uuid.UUID,
        action: BookingAction,
        actor: Actor,
        now: datetime | None = None,
    ) -> TransitionResult:
        booking = await self._lock_booking(db, booking_id)
        now = now or datetime.now(timezone.utc)

        result = booking_machine.transition_booking(
            booking_snapshot(booking),
            action,
            actor,
            now=now,
            grace=timedelta(minutes=settings.AUTO_COMPLETE_GRACE_MINUTES),
        )

        booking.status = result.new_state
        booking.record_status_change(result.previous_state, result.new_state, result.action, actor.role.value, now)

        if any(e.kind == SideEffectKind.INCREMENT_COMPLETED for e in result.side_effects):
            booking.provider.completed_services = (booking.provider.completed_services or 0) + 1

        await db.flush()
        return result

    async def complete_elapsed_bookings(self, db: AsyncSession, now: datetime | None = None) -> list[TransitionResult]:
        now = now or datetime.now(timezone.utc)
        grace = timedelta(minutes=settings.AUTO_COMPLETE_GRACE_MINUTES)

        result = await db.execute(
            select(Booking.id).where(
                Booking.status == BookingStatus.CONFIRMED.value,
                Booking.is_deleted.is_(False),
            )
        )
        candidates = result.scalars().all()

        completed = []
        for booking_id in candidates:
            # One savepoint per booking; a failure rolls back only that booking
            try:
                async with db.begin_nested():
                    booking = await self._lock_booking(db, booking_id)
                    if booking.status != BookingStatus.CONFIRMED.value:
                        continue
                    if not booking_machine.has_elapsed(booking_snapshot(booking), now, grace):
                        continue
                    completed.append(
                        await self.transition_booking(db, booking_id, BookingAction.COMPLETE, Actor.system(), now=now)
                    )
            except Exception:
                logger.exception("Auto-completion failed for booking %s", booking_id)

        if completed:
            logger.info("Auto-completed %d elapsed bookings", len(completed))
        return completed

    # ---------- Job postings & applications ----------

    async def create_application(
        self,
        db: AsyncSession,
        actor: Actor,
        posting_id: uuid.UUID,
        proposed_price: int,
        proposed_deadline: datetime | None = None,
        cover_letter: str | None = None,
    ) -> tuple[JobApplication, list[SideEffect]]:
        if actor.role != ActorRole.PROVIDER:
            raise PermissionDeniedError("Only providers can apply to job postings")
        if proposed_price < 0:
            raise ValidationError("proposed_price must not be negative")

        profile = await self._get_provider_for_user(db, actor.user_id)
        posting = await self._lock_posting(db, posting_id)
        if posting.status != PostingStatus.OPEN.value:
            raise InvalidTransitionError(
                job_machine.POSTING, posting.status, "apply", reason="posting is no longer open"
            )
        if posting.provider_type != profile.provider_type:
            raise ValidationError(f"This job requires a {posting.provider_type}")

        existing = await db.execute(
            select(JobApplication.id).where(
                JobApplication.posting_id == posting_id,
                JobApplication.provider_id == profile.id,
                JobApplication.status.in_([ApplicationStatus.PENDING.value, ApplicationStatus.ACCEPTED.value]),
            )
        )
        if existing.first() is not None:
            raise ConflictError("You already have an active application for this job")

        application = JobApplication(
            posting_id=posting_id,
            provider_id=profile.id,
            proposed_price=proposed_price,
            proposed_deadline=proposed_deadline,
            cover_letter=cover_letter,
            status=ApplicationStatus.PENDING.value,
            status_history=[],
        )
        db.add(application)
        await db.flush()
        await db.refresh(application)

        effect = SideEffect(
            kind=SideEffectKind.NOTIFY,
            event="application.received",
            recipient_id=posting.client_id,
            entity=job_machine.APPLICATION,
            entity_id=application.id,
            data={"posting_id": str(posting.id), "title": posting.title},
        )
        return application, [effect]

    async def transition_application(
        self,
        db: AsyncSession,
        application_id: uuid.UUID,
        action: ApplicationAction,
        actor: Actor,
    ) -> TransitionResult:
        # Lock order is always posting first, then its applications by id
        posting_id = await self._posting_id_for_application(db, application_id)
        posting = await self._lock_posting(db, posting_id)
        now = datetime.now(timezone.utc)

        siblings: list[JobApplication] = []
        if ApplicationAction(action) == ApplicationAction.ACCEPT:
            siblings = await self._lock_applications_for_posting(db, posting.id)
            application = next((s for s in siblings if s.id == application_id), None)
            if application is None:
                raise NotFoundError("Job application", str(application_id))
        else:
            application = await self._lock_application(db, application_id)

        result = job_machine.transition_application(
            posting_snapshot(posting),
            application_snapshot(application),
            action,
            actor,
            siblings=[application_snapshot(s) for s in siblings],
        )

        if isinstance(result, GroupTransitionResult):
            await self._assign_posting(db, posting, result, actor, now)
            by_id = {s.id: s for s in siblings}
            by_id[application.id] = application
            for app_id, new_status in result.application_states.items():
                target = by_id[app_id]
                previous = target.status
                target.status = new_status.value
                target.record_status_change(previous, new_status.value, result.action, actor.role.value, now)
        else:
            application.status = result.new_state
            application.record_status_change(
                result.previous_state, result.new_state, result.action, actor.role.value, now
            )

        await db.flush()
        return result

    async def transition_posting(
        self,
        db: AsyncSession,
        posting_id: uuid.UUID,
        action: PostingAction,
        actor: Actor,
    ) -> GroupTransitionResult:
        posting = await self._lock_posting(db, posting_id)
        applications = await self._lock_applications_for_posting(db, posting.id)
        now = datetime.now(timezone.utc)

        result = job_machine.transition_posting(
            posting_snapshot(posting),
            action,
            actor,
            applications=[application_snapshot(a) for a in applications],
        )

        posting.status = result.new_state
        posting.record_status_change(result.previous_state, result.new_state, result.action, actor.role.value, now)
        by_id = {a.id: a for a in applications}
        for app_id, new_status in result.application_states.items():
            target = by_id[app_id]
            previous = target.status
            target.status = new_status.value
            target.record_status_change(previous, new_status.value, f"posting_{result.action}", actor.role.value, now)

        await db.flush()
        return result

    # ---------- Reviews ----------

    async def create_review(
        self,
        db: AsyncSession,
        booking_id: uuid.UUID,
        actor: Actor,
        rating: int,
        comment: str | None = None,
    ) -> tuple[Review, list[SideEffect]]:
        booking = await self._lock_booking(db, booking_id)
        existing = await db.execute(select(Review.reviewer_id).where(Review.booking_id == booking.id))

        reviewee_id = check_review_allowed(
            BookingStatus(booking.status),
            actor.user_id,
            booking.client_id,
            booking.provider.user_id,
            set(existing.scalars().all()),
            rating,
        )

        review = Review(
            booking_id=booking.id,
            reviewer_id=actor.user_id,
            reviewee_id=reviewee_id,
            rating=rating,
            comment=comment,
        )
        db.add(review)
        await db.flush()
        await db.refresh(review)

        if reviewee_id == booking.provider.user_id:
            ratings = await db.execute(select(Review.rating).where(Review.reviewee_id == reviewee_id))
            values = ratings.scalars().all()
            booking.provider.rating = mean_rating(values)
            booking.provider.review_count = len(values)
            await db.flush()

        effect = SideEffect(
            kind=SideEffectKind.NOTIFY,
            event="review.received",
            recipient_id=reviewee_id,
            entity="booking",
            entity_id=booking.id,
            data={"rating": rating},
        )
        return review, [effect]

    # ---------- Loading ----------

    @staticmethod
    def _default_amount(service: ProviderService) -> int:
        if service.pricing_mode == PricingMode.PERCENTAGE.value:
            return service.min_price or 0
        return service.price or 0

    async def _get_provider(self, db: AsyncSession, provider_id: uuid.UUID) -> ProviderProfile:
        result = await db.execute(
            select(ProviderProfile).where(
                ProviderProfile.id == provider_id, ProviderProfile.is_deleted.is_(False)
            )
        )
        provider = result.scalar_one_or_none()
        if not provider:
            raise NotFoundError("Provider", str(provider_id))
        return provider

    async def _get_provider_for_user(self, db: AsyncSession, user_id: uuid.UUID) -> ProviderProfile:
        result = await db.execute(
            select(ProviderProfile).where(
                ProviderProfile.user_id == user_id, ProviderProfile.is_deleted.is_(False)
            )
        )
        provider = result.scalar_one_or_none()
        if not provider:
            raise NotFoundError("Provider profile")
        return provider

    async def _lock_booking(self, db: AsyncSession, booking_id: uuid.UUID) -> Booking:
        result = await db.execute(
            select(Booking)
            .where(Booking.id == booking_id, Booking.is_deleted.is_(False))
            .with_for_update()
        )
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    async def _lock_posting(self, db: AsyncSession, posting_id: uuid.UUID) -> JobPosting:
        result = await db.execute(
            select(JobPosting)
            .where(JobPosting.id == posting_id, JobPosting.is_deleted.is_(False))
            .with_for_update()
        )
        posting = result.scalar_one_or_none()
        if not posting:
            raise NotFoundError("Job posting", str(posting_id))
        return posting

    async def _posting_id_for_application(self, db: AsyncSession, application_id: uuid.UUID) -> uuid.UUID:
        result = await db.execute(
            select(JobApplication.posting_id).where(
                JobApplication.id == application_id, JobApplication.is_deleted.is_(False)
            )
        )
        posting_id = result.scalar_one_or_none()
        if posting_id is None:
            raise NotFoundError("Job application", str(application_id))
        return posting_id

    async def _lock_application(self, db: AsyncSession, application_id: uuid.UUID) -> JobApplication:
        result = await db.execute(
            select(JobApplication)
            .where(JobApplication.id == application_id, JobApplication.is_deleted.is_(False))
            .with_for_update()
        )
        application = result.scalar_one_or_none()
        if not application:
            raise NotFoundError("Job application", str(application_id))
        return application

    async def _lock_applications_for_posting(self, db: AsyncSession, posting_id: uuid.UUID) -> list[JobApplication]:
        result = await db.execute(
            select(JobApplication)
            .where(JobApplication.posting_id == posting_id, JobApplication.is_deleted.is_(False))
            .order_by(JobApplication.id)
            .with_for_update()
        )
        return list(result.scalars().all())

    async def _assign_posting(
        self,
        db: AsyncSession,
        posting: JobPosting,
        result: GroupTransitionResult,
        actor: Actor,
        now: datetime,
    ) -> None:
        # Compare-and-set: a concurrent accept that already assigned the posting wins
        cas = await db.execute(
            update(JobPosting)
            .where(JobPosting.id == posting.id, JobPosting.status == PostingStatus.OPEN.value)
            .values(status=result.posting_state.value)
            .execution_options(synchronize_session=False)
        )
        if cas.rowcount != 1:
            raise InvalidTransitionError(
                job_machine.POSTING, posting.status, "accept application", reason="posting was assigned concurrently"
            )
        posting.status = result.posting_state.value
        posting.record_status_change(
            PostingStatus.OPEN.value, result.posting_state.value, "accept_application", actor.role.value, now
        )
