from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select, update

from conftest import actor_for
from lexlink.common.enums import ApplicationAction, BookingAction, BookingStatus, PostingAction, PostingStatus
from lexlink.common.exceptions import InvalidTransitionError
from lexlink.core.engagement.service import EngagementService
from lexlink.core.notifications.service import dispatch_side_effects
from lexlink.db.models.job import JobApplication, JobPosting
from lexlink.db.models.notification import Notification

START = datetime(2026, 3, 10, 10, 0, tzinfo=timezone.utc)
END = START + timedelta(hours=1)


async def confirmed_booking(db_session, client_user, provider_profile):
    service = EngagementService()
    booking, _ = await service.create_booking(
        db_session, actor_for(client_user), provider_profile.id, START, END, total_amount=10000
    )
    await service.transition_booking(db_session, booking.id, BookingAction.CONFIRM, actor_for(provider_profile.user))
    return booking


async def open_posting(db_session, client_user) -> JobPosting:
    posting = JobPosting(
        client_id=client_user.id,
        title="Enforce a court ruling",
        description="Debt recovery",
        provider_type="notary",
        pricing_mode="fixed",
        budget=80000,
        status=PostingStatus.OPEN.value,
        status_history=[],
    )
    db_session.add(posting)
    await db_session.flush()
    return posting


@pytest.mark.asyncio
async def test_create_booking_computes_platform_fee(db_session, client_user, provider_profile):
    booking, effects = await EngagementService().create_booking(
        db_session, actor_for(client_user), provider_profile.id, START, END, total_amount=12345
    )
    assert booking.status == BookingStatus.PENDING.value
    assert booking.platform_fee == 1235
    assert [e.event for e in effects] == ["booking.requested"]


@pytest.mark.asyncio
async def test_complete_elapsed_bookings(db_session, client_user, provider_profile):
    booking = await confirmed_booking(db_session, client_user, provider_profile)
    service = EngagementService()

    assert await service.complete_elapsed_bookings(db_session, now=END - timedelta(minutes=1)) == []
    assert booking.status == BookingStatus.CONFIRMED.value

    results = await service.complete_elapsed_bookings(db_session, now=END + timedelta(minutes=1))
    assert [r.entity_id for r in results] == [booking.id]
    assert booking.status == BookingStatus.COMPLETED.value
    assert booking.status_history[-1]["actor_role"] == "system"
    assert provider_profile.completed_services == 1

    # Already completed bookings are not picked up again
    assert await service.complete_elapsed_bookings(db_session, now=END + timedelta(days=1)) == []


class FailingCompletionService(EngagementService):
    """Writes the completion for one booking and then fails."""

    def __init__(self, failing_id):
        self.failing_id = failing_id

    async def transition_booking(self, db, booking_id, *args, **kwargs):
        result = await super().transition_booking(db, booking_id, *args, **kwargs)
        if booking_id == self.failing_id:
            raise RuntimeError("storage failure")
        return result


@pytest.mark.asyncio
async def test_failed_completion_does_not_undo_the_rest_of_the_sweep(
    db_session, client_user, provider_profile
):
    healthy = await confirmed_booking(db_session, client_user, provider_profile)
    broken = await confirmed_booking(db_session, client_user, provider_profile)

    results = await FailingCompletionService(broken.id).complete_elapsed_bookings(
        db_session, now=END + timedelta(minutes=1)
    )

    assert [r.entity_id for r in results] == [healthy.id]
    await db_session.refresh(healthy)
    await db_session.refresh(broken)
    await db_session.refresh(provider_profile)
    assert healthy.status == BookingStatus.COMPLETED.value
    assert broken.status == BookingStatus.CONFIRMED.value
    assert provider_profile.completed_services == 1


@pytest.mark.asyncio
async def test_pending_bookings_are_not_auto_completed(db_session, client_user, provider_profile):
    booking, _ = await EngagementService().create_booking(
        db_session, actor_for(client_user), provider_profile.id, START, END
    )
    results = await EngagementService().complete_elapsed_bookings(db_session, now=END + timedelta(days=1))
    assert results == []
    assert booking.status == BookingStatus.PENDING.value


@pytest.mark.asyncio
async def test_accept_loses_to_concurrent_assignment(db_session, client_user, make_provider):
    service = EngagementService()
    posting = await open_posting(db_session, client_user)
    applications = []
    for _ in range(2):
        profile = await make_provider()
        application, _ = await service.create_application(
            db_session, actor_for(profile.user), posting.id, proposed_price=70000
        )
        applications.append(application)

    # Another transaction assigns the posting behind this session's back
    await db_session.execute(
        update(JobPosting)
        .where(JobPosting.id == posting.id)
        .values(status=PostingStatus.ASSIGNED.value)
        .execution_options(synchronize_session=False)
    )
    assert posting.status == PostingStatus.OPEN.value

    with pytest.raises(InvalidTransitionError):
        await service.transition_application(
            db_session, applications[0].id, ApplicationAction.ACCEPT, actor_for(client_user)
        )

    result = await db_session.execute(
        select(JobApplication.status).where(JobApplication.posting_id == posting.id)
    )
    assert set(result.scalars().all()) == {"pending"}


@pytest.mark.asyncio
async def test_accept_records_history_on_every_affected_row(db_session, client_user, make_provider):
    service = EngagementService()
    posting = await open_posting(db_session, client_user)
    applications = []
    for _ in range(3):
        profile = await make_provider()
        application, _ = await service.create_application(
            db_session, actor_for(profile.user), posting.id, proposed_price=70000
        )
        applications.append(application)

    await service.transition_application(
        db_session, applications[2].id, ApplicationAction.ACCEPT, actor_for(client_user)
    )

    assert posting.status == PostingStatus.ASSIGNED.value
    assert posting.status_history[-1]["to"] == "assigned"
    assert [a.status for a in applications] == ["rejected", "rejected", "accepted"]
    assert all(len(a.status_history) == 1 for a in applications)


@pytest.mark.asyncio
async def test_dispatch_side_effects_creates_notifications(db_session, client_user, provider_profile):
    booking, effects = await EngagementService().create_booking(
        db_session, actor_for(client_user), provider_profile.id, START, END
    )
    result = await EngagementService().transition_booking(
        db_session, booking.id, BookingAction.CONFIRM, actor_for(provider_profile.user)
    )

    created = await dispatch_side_effects(db_session, effects + result.side_effects)

    # lock_slot is not a notifying intent
    assert [(n.user_id, n.event) for n in created] == [
        (provider_profile.user_id, "booking.requested"),
        (client_user.id, "booking.confirmed"),
    ]
    assert created[0].title == "New booking request"


@pytest.mark.asyncio
async def test_dispatch_accepts_serialized_effects(db_session, client_user, provider_profile):
    booking, effects = await EngagementService().create_booking(
        db_session, actor_for(client_user), provider_profile.id, START, END
    )
    payload = [e.model_dump(mode="json") for e in effects]

    created = await dispatch_side_effects(db_session, payload)
    assert len(created) == 1

    result = await db_session.execute(select(Notification).where(Notification.user_id == provider_profile.user_id))
    notification = result.scalar_one()
    assert notification.entity_id == booking.id
    assert notification.category == "booking"


class LockRecordingService(EngagementService):
    def __init__(self):
        self.locks = []

    async def _lock_posting(self, db, posting_id):
        self.locks.append("posting")
        return await super()._lock_posting(db, posting_id)

    async def _lock_application(self, db, application_id):
        self.locks.append("application")
        return await super()._lock_application(db, application_id)

    async def _lock_applications_for_posting(self, db, posting_id):
        self.locks.append("applications")
        return await super()._lock_applications_for_posting(db, posting_id)


async def posting_with_applications(db_session, client_user, make_provider, service, count=2):
    posting = await open_posting(db_session, client_user)
    applications = []
    for _ in range(count):
        profile = await make_provider()
        application, _ = await service.create_application(
            db_session, actor_for(profile.user), posting.id, proposed_price=70000
        )
        applications.append(application)
    service.locks.clear()
    return posting, applications


@pytest.mark.asyncio
@pytest.mark.parametrize("action", [ApplicationAction.ACCEPT, ApplicationAction.REJECT])
async def test_application_transitions_lock_posting_first(db_session, client_user, make_provider, action):
    service = LockRecordingService()
    _, applications = await posting_with_applications(db_session, client_user, make_provider, service)

    await service.transition_application(db_session, applications[1].id, action, actor_for(client_user))

    assert service.locks[0] == "posting"
    assert service.locks.count("posting") == 1


@pytest.mark.asyncio
async def test_withdraw_locks_posting_before_application(db_session, client_user, make_provider):
    service = LockRecordingService()
    _, applications = await posting_with_applications(db_session, client_user, make_provider, service, count=1)

    await service.transition_application(
        db_session, applications[0].id, ApplicationAction.WITHDRAW, actor_for(applications[0].provider.user)
    )

    assert service.locks == ["posting", "application"]


@pytest.mark.asyncio
async def test_posting_transition_uses_the_same_lock_order(db_session, client_user, make_provider):
    service = LockRecordingService()
    posting, _ = await posting_with_applications(db_session, client_user, make_provider, service)

    await service.transition_posting(db_session, posting.id, PostingAction.CANCEL, actor_for(client_user))

    assert service.locks == ["posting", "applications"]


@pytest.mark.asyncio
async def test_applications_are_locked_in_id_order(db_session, client_user, make_provider):
    service = LockRecordingService()
    posting, applications = await posting_with_applications(db_session, client_user, make_provider, service, count=4)

    locked = await service._lock_applications_for_posting(db_session, posting.id)

    assert [a.id for a in locked] == sorted(a.id for a in applications)
