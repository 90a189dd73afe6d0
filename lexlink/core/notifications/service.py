"""Turns side-effect intents from the engagement engine into in-app notifications."""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from lexlink.common.enums import NotificationCategory, SideEffectKind
from lexlink.common.logging import get_logger
from lexlink.core.engagement.schemas import SideEffect
from lexlink.db.models.notification import Notification

logger = get_logger("notifications.service")

EVENT_MESSAGES: dict[str, tuple[NotificationCategory, str, str]] = {
    "booking.requested": (NotificationCategory.BOOKING, "New booking request", "A client has requested a booking with you."),
    "booking.confirmed": (NotificationCategory.BOOKING, "Booking confirmed", "Your booking has been confirmed by the provider."),
    "booking.completed": (NotificationCategory.BOOKING, "Booking completed", "Your booking has been marked as completed."),
    "booking.cancelled": (NotificationCategory.BOOKING, "Booking cancelled", "A booking you are part of has been cancelled."),
    "review.requested": (NotificationCategory.REVIEW, "How did it go?", "Leave a review for your completed booking."),
    "review.received": (NotificationCategory.REVIEW, "New review", "You received a new review."),
    "application.received": (NotificationCategory.APPLICATION, "New application", "A provider applied to your job posting."),
    "application.accepted": (NotificationCategory.APPLICATION, "Application accepted", "Your application was accepted."),
    "application.rejected": (NotificationCategory.APPLICATION, "Application not selected", "Your application was not selected."),
    "application.withdrawn": (NotificationCategory.APPLICATION, "Application withdrawn", "A provider withdrew their application."),
    "job.completed": (NotificationCategory.JOB, "Job completed", "The client marked the job as completed."),
    "job.cancelled": (NotificationCategory.JOB, "Job cancelled", "The client cancelled the job."),
}

NOTIFYING_KINDS = frozenset({SideEffectKind.NOTIFY, SideEffectKind.REQUEST_REVIEW})


async def create_notification(
    db: AsyncSession,
    user_id: uuid.UUID,
    category: str,
    event: str,
    title: str,
    body: str,
    entity_type: str | None = None,
    entity_id: uuid.UUID | None = None,
    metadata: dict[str, Any] | None = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        category=category,
        event=event,
        title=title,
        body=body,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata_=metadata or {},
    )
    db.add(notification)
    await db.flush()

    logger.info("Created notification: event=%s user=%s", event, user_id)
    return notification


async def dispatch_side_effects(
    db: AsyncSession, effects: Iterable[SideEffect | dict[str, Any]]
) -> list[Notification]:
    """Persist a notification for every notifying intent; other intents are only logged."""
    created = []
    for raw in effects:
        effect = raw if isinstance(raw, SideEffect) else SideEffect.model_validate(raw)

        if effect.kind not in NOTIFYING_KINDS:
            logger.debug("Skipping non-notifying side effect %s (%s)", effect.kind.value, effect.event)
            continue
        if effect.recipient_id is None:
            logger.warning("Side effect %s has no recipient, skipping", effect.event)
            continue

        category, title, body = EVENT_MESSAGES.get(
            effect.event, (NotificationCategory.BOOKING, effect.event, effect.event)
        )
        if "title" in effect.data:
            body = f"{body} ({effect.data['title']})"

        created.append(
            await create_notification(
                db,
                user_id=effect.recipient_id,
                category=category.value,
                event=effect.event,
                title=title,
                body=body,
                entity_type=effect.entity,
                entity_id=effect.entity_id,
                metadata=effect.data,
            )
        )
    return created
