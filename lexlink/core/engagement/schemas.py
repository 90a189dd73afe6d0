from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from lexlink.common.enums import (
    ActorRole,
    ApplicationStatus,
    BookingStatus,
    PostingStatus,
    SideEffectKind,
)


class Actor(BaseModel):
    user_id: uuid.UUID | None = None
    role: ActorRole

    model_config = {"frozen": True}

    @classmethod
    def system(cls) -> Actor:
        return cls(user_id=None, role=ActorRole.SYSTEM)


class SideEffect(BaseModel):
    """Instruction for a collaborator outside the engine (notifier, scheduler, ...)."""

    kind: SideEffectKind
    event: str
    recipient_id: uuid.UUID | None = None
    entity: str
    entity_id: uuid.UUID
    data: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}


class BookingSnapshot(BaseModel):
    booking_id: uuid.UUID
    status: BookingStatus
    client_id: uuid.UUID
    provider_id: uuid.UUID
    provider_user_id: uuid.UUID
    start_time: datetime
    end_time: datetime | None = None


class PostingSnapshot(BaseModel):
    posting_id: uuid.UUID
    status: PostingStatus
    client_id: uuid.UUID
    title: str = ""


class ApplicationSnapshot(BaseModel):
    application_id: uuid.UUID
    posting_id: uuid.UUID
    status: ApplicationStatus
    provider_id: uuid.UUID
    provider_user_id: uuid.UUID


class TransitionResult(BaseModel):
    entity: str
    entity_id: uuid.UUID
    action: str
    previous_state: str
    new_state: str
    side_effects: list[SideEffect] = Field(default_factory=list)


class GroupTransitionResult(TransitionResult):
    """Result of a transition that also moves the posting and sibling applications."""

    posting_id: uuid.UUID
    posting_state: PostingStatus
    application_states: dict[uuid.UUID, ApplicationStatus] = Field(default_factory=dict)
