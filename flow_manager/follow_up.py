from __future__ import annotations  # Follow-up stack for spontaneous digressions

from typing import Tuple

from .errors import FollowUpLimitReached
from .models import ActionCode, FollowUpState, Position

DEFAULT_STREAK_CEILING = 3


def can_enter(streak: int, ceiling: int = DEFAULT_STREAK_CEILING) -> bool:
    return streak < ceiling


def enter(
    position: Position,
    attempts: int,
    resuming_action: ActionCode,
    *,
    streak: int = 0,
    question_text: str = "",
    ceiling: int = DEFAULT_STREAK_CEILING,
) -> FollowUpState:  # Pause the planned position behind a digression
    if not can_enter(streak, ceiling):
        raise FollowUpLimitReached(f"follow-up streak ceiling {ceiling} reached")
    return FollowUpState(
        paused_position=position,
        paused_attempts=attempts,
        resuming_action=ActionCode(resuming_action),
        streak_count=streak + 1,
        question_text=question_text,
    )


def exit(state: FollowUpState) -> Tuple[Position, ActionCode]:  # noqa: A001  Resume point with forward framing
    return state.paused_position, ActionCode.NEXT_QUESTION


__all__ = ["DEFAULT_STREAK_CEILING", "can_enter", "enter", "exit"]
