from __future__ import annotations  # Session lifecycle transition table

from typing import Dict, Literal, Tuple

from .errors import PhaseError
from .models import Phase

PhaseEvent = Literal["start", "plan_accepted", "plan_rejected", "begin", "terminal", "failure"]

TRANSITIONS: Dict[Tuple[Phase, PhaseEvent], Phase] = {
    ("setup", "start"): "planning",
    ("planning", "plan_accepted"): "plan_accepted",
    ("planning", "plan_rejected"): "setup",
    ("planning", "failure"): "ended",
    ("plan_accepted", "begin"): "in_progress",
    ("plan_accepted", "failure"): "ended",
    ("in_progress", "terminal"): "ended",
    ("in_progress", "failure"): "ended",
    ("ended", "terminal"): "ended",
    ("ended", "failure"): "ended",
}


def next_phase(phase: Phase, event: PhaseEvent) -> Phase:  # Pure transition function
    try:
        return TRANSITIONS[(phase, event)]
    except KeyError:
        raise PhaseError(phase, event) from None


def accepts_answers(phase: Phase) -> bool:
    return phase == "in_progress"


__all__ = ["PhaseEvent", "TRANSITIONS", "accepts_answers", "next_phase"]
