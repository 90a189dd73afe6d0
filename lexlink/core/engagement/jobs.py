"""Job posting and job application lifecycles.

A posting starts open. Accepting one of its pending applications accepts that
application, rejects every other pending application and assigns the posting,
as a single group transition.
"""

from __future__ import annotations

from collections.abc import Iterable

from lexlink.common.enums import (
    ActorRole,
    ApplicationAction,
    ApplicationStatus,
    PostingAction,
    PostingStatus,
    SideEffectKind,
)
from lexlink.common.exceptions import (
    InvalidTransitionError,
    PermissionDeniedError,
    TerminalStateViolationError,
    ValidationError,
)
from lexlink.common.logging import get_logger
from lexlink.core.engagement.schemas import (
    Actor,
    ApplicationSnapshot,
    GroupTransitionResult,
    PostingSnapshot,
    SideEffect,
    TransitionResult,
)

logger = get_logger("engagement.jobs")

POSTING = "job posting"
APPLICATION = "job application"

POSTING_TRANSITIONS: dict[PostingStatus, dict[PostingAction, PostingStatus]] = {
    PostingStatus.OPEN: {PostingAction.CANCEL: PostingStatus.CANCELLED},
    PostingStatus.ASSIGNED: {
        PostingAction.COMPLETE: PostingStatus.COMPLETED,
        PostingAction.CANCEL: PostingStatus.CANCELLED,
    },
    PostingStatus.COMPLETED: {},
    PostingStatus.CANCELLED: {},
}

TERMINAL_POSTING_STATES = frozenset({PostingStatus.COMPLETED, PostingStatus.CANCELLED})

APPLICATION_TRANSITIONS: dict[ApplicationStatus, dict[ApplicationAction, ApplicationStatus]] = {
    ApplicationStatus.PENDING: {
        ApplicationAction.ACCEPT: ApplicationStatus.ACCEPTED,
        ApplicationAction.REJECT: ApplicationStatus.REJECTED,
        ApplicationAction.WITHDRAW: ApplicationStatus.WITHDRAWN,
    },
    ApplicationStatus.ACCEPTED: {},
    ApplicationStatus.REJECTED: {},
    ApplicationStatus.WITHDRAWN: {},
}

TERMINAL_APPLICATION_STATES = frozenset({ApplicationStatus.REJECTED, ApplicationStatus.WITHDRAWN})

APPLICATION_ACTION_ROLES: dict[ApplicationAction, frozenset[ActorRole]] = {
    ApplicationAction.ACCEPT: frozenset({ActorRole.CLIENT, ActorRole.ADMIN}),
    ApplicationAction.REJECT: frozenset({ActorRole.CLIENT, ActorRole.ADMIN}),
    ApplicationAction.WITHDRAW: frozenset({ActorRole.PROVIDER, ActorRole.ADMIN}),
}


def _notify(entity: str, entity_id, recipient, event: str, **data) -> SideEffect:
    return SideEffect(
        kind=SideEffectKind.NOTIFY,
        event=event,
        recipient_id=recipient,
        entity=entity,
        entity_id=entity_id,
        data=data,
    )


def _check_posting_owner(posting: PostingSnapshot, actor: Actor) -> None:
    if actor.role == ActorRole.CLIENT and actor.user_id != posting.client_id:
        raise PermissionDeniedError("Only the client who posted this job may manage it")


def _check_application_target(
    application: ApplicationSnapshot, action: ApplicationAction
) -> ApplicationStatus:
    current = ApplicationStatus(application.status)
    if current in TERMINAL_APPLICATION_STATES:
        raise TerminalStateViolationError(APPLICATION, current.value, action.value)
    target = APPLICATION_TRANSITIONS[current].get(action)
    if target is None:
        raise InvalidTransitionError(APPLICATION, current.value, action.value)
    return target


def accept_application(
    posting: PostingSnapshot,
    application: ApplicationSnapshot,
    siblings: Iterable[ApplicationSnapshot],
    actor: Actor,
) -> GroupTransitionResult:
    """Accept ``application`` and reject every other pending application on ``posting``."""
    action = ApplicationAction.ACCEPT
    if actor.role not in APPLICATION_ACTION_ROLES[action]:
        raise InvalidTransitionError(
            APPLICATION, application.status.value, action.value,
            reason=f"not permitted for role '{actor.role.value}'",
        )
    if application.posting_id != posting.posting_id:
        raise ValidationError("Application does not belong to this job posting")
    _check_posting_owner(posting, actor)

    if PostingStatus(posting.status) != PostingStatus.OPEN:
        raise InvalidTransitionError(
            POSTING, posting.status.value, "accept application", reason="posting is no longer open"
        )
    target = _check_application_target(application, action)

    states = {application.application_id: target}
    rejected = [
        s for s in siblings
        if s.application_id != application.application_id
        and s.posting_id == posting.posting_id
        and ApplicationStatus(s.status) == ApplicationStatus.PENDING
    ]
    for sibling in rejected:
        states[sibling.application_id] = ApplicationStatus.REJECTED

    effects = [
        _notify(
            APPLICATION, application.application_id, application.provider_user_id,
            "application.accepted", posting_id=str(posting.posting_id), title=posting.title,
        )
    ]
    effects.extend(
        _notify(
            APPLICATION, sibling.application_id, sibling.provider_user_id,
            "application.rejected", posting_id=str(posting.posting_id), title=posting.title,
        )
        for sibling in rejected
    )

    logger.info(
        "Accepted application %s on posting %s, rejected %d others",
        application.application_id, posting.posting_id, len(rejected),
    )
    return GroupTransitionResult(
        entity=APPLICATION,
        entity_id=application.application_id,
        action=action.value,
        previous_state=application.status.value,
        new_state=target.value,
        side_effects=effects,
        posting_id=posting.posting_id,
        posting_state=PostingStatus.ASSIGNED,
        application_states=states,
    )


def transition_application(
    posting: PostingSnapshot,
    application: ApplicationSnapshot,
    action: ApplicationAction,
    actor: Actor,
    siblings: Iterable[ApplicationSnapshot] = (),
) -> TransitionResult:
    action = ApplicationAction(action)
    if action == ApplicationAction.ACCEPT:
        return accept_application(posting, application, siblings, actor)

    current = ApplicationStatus(application.status)
    if actor.role not in APPLICATION_ACTION_ROLES[action]:
        raise InvalidTransitionError(
            APPLICATION, current.value, action.value,
            reason=f"not permitted for role '{actor.role.value}'",
        )

    if action == ApplicationAction.REJECT:
        _check_posting_owner(posting, actor)
        recipient = application.provider_user_id
        event = "application.rejected"
    else:
        if actor.role == ActorRole.PROVIDER and actor.user_id != application.provider_user_id:
            raise PermissionDeniedError("Only the applying provider may withdraw an application")
        recipient = posting.client_id
        event = "application.withdrawn"

    target = _check_application_target(application, action)

    logger.info("Application %s: %s -> %s", application.application_id, current.value, target.value)
    return TransitionResult(
        entity=APPLICATION,
        entity_id=application.application_id,
        action=action.value,
        previous_state=current.value,
        new_state=target.value,
        side_effects=[
            _notify(
                APPLICATION, application.application_id, recipient, event,
                posting_id=str(posting.posting_id), title=posting.title,
            )
        ],
    )


def transition_posting(
    posting: PostingSnapshot,
    action: PostingAction,
    actor: Actor,
    applications: Iterable[ApplicationSnapshot] = (),
) -> GroupTransitionResult:
    """Complete or cancel a posting.

    Cancelling an open posting rejects its pending applications; completing or
    cancelling an assigned one notifies the accepted provider.
    """
    current = PostingStatus(posting.status)
    action = PostingAction(action)

    if current in TERMINAL_POSTING_STATES:
        raise TerminalStateViolationError(POSTING, current.value, action.value)
    if actor.role not in (ActorRole.CLIENT, ActorRole.ADMIN):
        raise InvalidTransitionError(
            POSTING, current.value, action.value, reason=f"not permitted for role '{actor.role.value}'"
        )
    _check_posting_owner(posting, actor)

    target = POSTING_TRANSITIONS[current].get(action)
    if target is None:
        raise InvalidTransitionError(POSTING, current.value, action.value)

    states: dict = {}
    effects: list[SideEffect] = []
    for app in applications:
        if app.posting_id != posting.posting_id:
            continue
        status = ApplicationStatus(app.status)
        if status == ApplicationStatus.PENDING:
            states[app.application_id] = ApplicationStatus.REJECTED
            effects.append(
                _notify(
                    APPLICATION, app.application_id, app.provider_user_id,
                    "application.rejected", posting_id=str(posting.posting_id), title=posting.title,
                )
            )
        elif status == ApplicationStatus.ACCEPTED:
            effects.append(
                _notify(
                    POSTING, posting.posting_id, app.provider_user_id,
                    f"job.{target.value}", title=posting.title,
                )
            )

    logger.info("Job posting %s: %s -> %s", posting.posting_id, current.value, target.value)
    return GroupTransitionResult(
        entity=POSTING,
        entity_id=posting.posting_id,
        action=action.value,
        previous_state=current.value,
        new_state=target.value,
        side_effects=effects,
        posting_id=posting.posting_id,
        posting_state=target,
        application_states=states,
    )
