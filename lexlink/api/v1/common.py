"""Response shapes and helpers shared by the engagement routers."""

import uuid
from typing import Any

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from lexlink.common.logging import get_logger
from lexlink.core.engagement.schemas import GroupTransitionResult, SideEffect, TransitionResult

logger = get_logger("api.engagement")


class SideEffectResponse(BaseModel):
    kind: str
    event: str
    recipient_id: uuid.UUID | None
    entity: str
    entity_id: uuid.UUID
    data: dict[str, Any]


class TransitionResponse(BaseModel):
    entity: str
    entity_id: uuid.UUID
    action: str
    previous_status: str
    status: str
    side_effects: list[SideEffectResponse]
    posting_status: str | None = None
    application_statuses: dict[uuid.UUID, str] | None = None


def transition_response(result: TransitionResult) -> TransitionResponse:
    response = TransitionResponse(
        entity=result.entity,
        entity_id=result.entity_id,
        action=result.action,
        previous_status=result.previous_state,
        status=result.new_state,
        side_effects=[SideEffectResponse(**e.model_dump(mode="json")) for e in result.side_effects],
    )
    if isinstance(result, GroupTransitionResult):
        response.posting_status = result.posting_state.value
        response.application_statuses = {k: v.value for k, v in result.application_states.items()}
    return response


def enqueue_side_effects(effects: list[SideEffect]) -> None:
    if not effects:
        return

    from lexlink.tasks.notification_tasks import dispatch_side_effects

    dispatch_side_effects.delay([e.model_dump(mode="json") for e in effects])
    logger.debug("Enqueued %d side effects", len(effects))


async def commit_and_enqueue(db: AsyncSession, effects: list[SideEffect]) -> None:
    """Commit the request transaction, then queue its side effects.

    A failed commit raises before anything reaches the worker.
    """
    await db.commit()
    enqueue_side_effects(effects)
