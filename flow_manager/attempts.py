from __future__ import annotations  # Attempt governor for planned-question retries

from typing import Tuple

from .models import ActionCode, AttemptState, Position

DEFAULT_CEILING = 3


def record(
    attempts: AttemptState,
    position: Position,
    action: ActionCode,
    *,
    ceiling: int = DEFAULT_CEILING,
) -> Tuple[AttemptState, ActionCode]:  # Count a retry request and escalate at the ceiling
    """Apply ``action`` to the retry counter held for ``position``.

    Repeat and Clarify increment the count. The request that brings the
    count to ``ceiling`` is escalated to NextQuestion, so a question is
    answered at most ``ceiling`` times. Any other action starts a fresh
    counter at zero.
    """

    if ceiling < 1:
        raise ValueError("attempt ceiling must be at least 1")
    action = ActionCode(action)
    if not action.is_retry:
        return AttemptState(position=position, count=0), action
    count = min(attempts.count_for(position) + 1, ceiling)
    updated = AttemptState(position=position, count=count)
    if count >= ceiling:
        return updated, ActionCode.NEXT_QUESTION
    return updated, action


def restore(position: Position, count: int) -> AttemptState:  # Reinstate a paused counter after a digression
    return AttemptState(position=position, count=max(0, count))


__all__ = ["DEFAULT_CEILING", "record", "restore"]
