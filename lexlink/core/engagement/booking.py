"""Booking lifecycle.

    pending --confirm--> confirmed --complete--> completed
    pending --cancel--> cancelled
    confirmed --cancel--> cancelled

completed and cancelled are terminal and retained for history.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from lexlink.common.enums import ActorRole, BookingAction, BookingStatus, SideEffectKind
from lexlink.common.exceptions import (
    InvalidTransitionError,
    PermissionDeniedError,
    TerminalStateViolationError,
)
from lexlink.common.logging import get_logger
from lexlink.core.engagement.schemas import Actor, BookingSnapshot, SideEffect, TransitionResult

logger = get_logger("engagement.booking")

ENTITY = "booking"

BOOKING_TRANSITIONS: dict[BookingStatus, dict[BookingAction, BookingStatus]] = {
    BookingStatus.PENDING: {
        BookingAction.CONFIRM: BookingStatus.CONFIRMED,
        BookingAction.CANCEL: BookingStatus.CANCELLED,
    },
    BookingStatus.CONFIRMED: {
        BookingAction.COMPLETE: BookingStatus.COMPLETED,
        BookingAction.CANCEL: BookingStatus.CANCELLED,
    },
    BookingStatus.COMPLETED: {},
    BookingStatus.CANCELLED: {},
}

TERMINAL_BOOKING_STATES = frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED})

BOOKING_ACTION_ROLES: dict[BookingAction, frozenset[ActorRole]] = {
    BookingAction.CONFIRM: frozenset({ActorRole.PROVIDER, ActorRole.ADMIN}),
    BookingAction.COMPLETE: frozenset({ActorRole.CLIENT, ActorRole.PROVIDER, ActorRole.ADMIN, ActorRole.SYSTEM}),
    BookingAction.CANCEL: frozenset({ActorRole.CLIENT, ActorRole.PROVIDER, ActorRole.ADMIN}),
}


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def window_end(booking: BookingSnapshot) -> datetime:
    return as_utc(booking.end_time or booking.start_time)


def has_elapsed(booking: BookingSnapshot, now: datetime | None = None, grace: timedelta = timedelta(0)) -> bool:
    now = as_utc(now or datetime.now(timezone.utc))
    return now >= window_end(booking) + grace


def _check_participant(booking: BookingSnapshot, actor: Actor) -> None:
    if actor.role == ActorRole.CLIENT and actor.user_id != booking.client_id:
        raise PermissionDeniedError("Only the booking's client may act on it")
    if actor.role == ActorRole.PROVIDER and actor.user_id != booking.provider_user_id:
        raise PermissionDeniedError("Only the booking's provider may act on it")


def _notify(booking: BookingSnapshot, recipient, event: str, **data) -> SideEffect:
    return SideEffect(
        kind=SideEffectKind.NOTIFY,
        event=event,
        recipient_id=recipient,
        entity=ENTITY,
        entity_id=booking.booking_id,
        data=data,
    )


def _side_effects(booking: BookingSnapshot, action: BookingAction, actor: Actor) -> list[SideEffect]:
    slot = {"start_time": booking.start_time.isoformat(), "provider_id": str(booking.provider_id)}

    if action == BookingAction.CONFIRM:
        return [
            _notify(booking, booking.client_id, "booking.confirmed"),
            SideEffect(
                kind=SideEffectKind.LOCK_SLOT, event="booking.slot_locked",
                recipient_id=booking.provider_user_id, entity=ENTITY,
                entity_id=booking.booking_id, data=slot,
            ),
        ]

    if action == BookingAction.COMPLETE:
        return [
            _notify(booking, booking.client_id, "booking.completed"),
            _notify(booking, booking.provider_user_id, "booking.completed"),
            SideEffect(
                kind=SideEffectKind.REQUEST_REVIEW, event="review.requested",
                recipient_id=booking.client_id, entity=ENTITY, entity_id=booking.booking_id,
            ),
            SideEffect(
                kind=SideEffectKind.INCREMENT_COMPLETED, event="provider.service_completed",
                recipient_id=booking.provider_user_id, entity=ENTITY,
                entity_id=booking.booking_id, data={"provider_id": str(booking.provider_id)},
            ),
        ]

    # cancel: tell whoever did not cancel
    if actor.role == ActorRole.CLIENT:
        recipients = [booking.provider_user_id]
    elif actor.role == ActorRole.PROVIDER:
        recipients = [booking.client_id]
    else:
        recipients = [booking.client_id, booking.provider_user_id]
    effects = [
        _notify(booking, recipient, "booking.cancelled", cancelled_by=actor.role.value)
        for recipient in recipients
    ]
    effects.append(
        SideEffect(
            kind=SideEffectKind.RELEASE_SLOT, event="booking.slot_released",
            recipient_id=booking.provider_user_id, entity=ENTITY,
            entity_id=booking.booking_id, data=slot,
        )
    )
    return effects


def booking_created_effects(booking: BookingSnapshot) -> list[SideEffect]:
    return [_notify(booking, booking.provider_user_id, "booking.requested")]


def transition_booking(
    booking: BookingSnapshot,
    action: BookingAction,
    actor: Actor,
    now: datetime | None = None,
    grace: timedelta = timedelta(0),
) -> TransitionResult:
    """Validate ``action`` against the booking's current state.

    Raises TerminalStateViolationError for completed/cancelled bookings and
    InvalidTransitionError for actions the current state or actor role does not allow.
    """
    current = BookingStatus(booking.status)
    action = BookingAction(action)

    if current in TERMINAL_BOOKING_STATES:
        raise TerminalStateViolationError(ENTITY, current.value, action.value)

    if actor.role not in BOOKING_ACTION_ROLES[action]:
        raise InvalidTransitionError(
            ENTITY, current.value, action.value, reason=f"not permitted for role '{actor.role.value}'"
        )
    _check_participant(booking, actor)

    target = BOOKING_TRANSITIONS[current].get(action)
    if target is None:
        raise InvalidTransitionError(ENTITY, current.value, action.value)

    # Scheduled completion only after the booked window; parties may mark complete early
    if action == BookingAction.COMPLETE and actor.role == ActorRole.SYSTEM:
        if not has_elapsed(booking, now, grace):
            raise InvalidTransitionError(
                ENTITY, current.value, action.value, reason="booking window has not elapsed"
            )

    logger.info(
        "Booking %s: %s -> %s (%s by %s)",
        booking.booking_id, current.value, target.value, action.value, actor.role.value,
    )
    return TransitionResult(
        entity=ENTITY,
        entity_id=booking.booking_id,
        action=action.value,
        previous_state=current.value,
        new_state=target.value,
        side_effects=_side_effects(booking, action, actor),
    )
