"""
Session state machine.

Defines which status moves are legal, who may make them, and which fields
each participant may write. Functions here only validate and mutate the
in-memory session; persistence belongs to the service layer.
"""

from typing import Dict, FrozenSet, Iterable, NamedTuple

from . import types
from .exceptions import ForbiddenError, InvalidTransitionError


class Rule(NamedTuple):
    sources: FrozenSet[str]
    actors: FrozenSet[str]


TRANSITIONS: Dict[str, Rule] = {
    types.CONFIRMED: Rule(
        sources=frozenset([types.SCHEDULED]),
        actors=frozenset([types.COACH]),
    ),
    types.IN_PROGRESS: Rule(
        sources=frozenset([types.SCHEDULED, types.CONFIRMED]),
        actors=frozenset([types.COACH, types.SYSTEM]),
    ),
    types.COMPLETED: Rule(
        sources=frozenset(types.ACTIVE_STATUSES),
        actors=frozenset([types.COACH]),
    ),
    types.NO_SHOW: Rule(
        sources=frozenset(types.ACTIVE_STATUSES),
        actors=frozenset([types.COACH, types.SYSTEM]),
    ),
    types.CANCELED: Rule(
        sources=frozenset(types.CANCELABLE_STATUSES),
        actors=frozenset([types.COACH, types.CLIENT]),
    ),
}

FIELD_WRITERS: Dict[str, FrozenSet[str]] = {
    'meeting_link': frozenset([types.COACH]),
    'location': frozenset([types.COACH]),
    'coach_notes': frozenset([types.COACH]),
    'client_notes': frozenset([types.CLIENT]),
    'notes': frozenset([types.COACH, types.CLIENT]),
}


def can_transition(current: str, target: str, actor: str) -> bool:
    rule = TRANSITIONS.get(target)
    return rule is not None and current in rule.sources and actor in rule.actors


def check_transition(current: str, target: str, actor: str) -> None:
    """
    Validate a status move.

    Raises:
        InvalidTransitionError: if the move is illegal or the actor may not make it
    """
    if current in types.TERMINAL_STATUSES:
        raise InvalidTransitionError(f"Session is already {current}")

    rule = TRANSITIONS.get(target)
    if rule is None or current not in rule.sources:
        raise InvalidTransitionError(f"Cannot move session from {current} to {target}")

    if actor not in rule.actors:
        raise InvalidTransitionError(f"Only the {' or '.join(sorted(rule.actors))} can mark a session {target}")


def check_field_writes(fields: Iterable[str], actor: str) -> None:
    """
    Validate that the actor may write every field in ``fields``.

    Raises:
        ForbiddenError: on the first field the actor may not write
    """
    for name in fields:
        if actor not in FIELD_WRITERS.get(name, frozenset()):
            raise ForbiddenError(f"The {actor} cannot change {name}")


def apply_transition(session, target: str, actor: str, now, reason: str = '') -> None:
    """
    Move ``session`` to ``target`` and record the side-effect fields.

    Args:
        session: Session instance (mutated, not saved)
        target: new status
        actor: 'coach', 'client' or 'system'
        now: aware datetime used for timestamps
        reason: cancellation reason
    """
    check_transition(session.status, target, actor)
    session.status = target

    if target == types.COMPLETED:
        session.completed_at = now
    elif target == types.CANCELED:
        session.canceled_at = now
        session.canceled_by = actor
        session.cancel_reason = reason or ''
