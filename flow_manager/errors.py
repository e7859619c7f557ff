from __future__ import annotations  # Flow engine error taxonomy


class FlowError(RuntimeError):  # Base error for the interview flow engine
    pass


class InvalidPlan(FlowError):  # Plan shape rejected; session returns to setup
    pass


class CollaboratorUnavailable(FlowError):  # Transport or timeout on a content call; ends the session
    def __init__(self, collaborator: str, message: str) -> None:
        super().__init__(f"{collaborator}: {message}")
        self.collaborator = collaborator


class InvalidAssessment(FlowError):  # Assessment outside the action or metric range; forces end
    pass


class InvalidTurnOutput(FlowError):  # Turn text neither planned nor follow-up; recovered locally
    pass


class FollowUpLimitReached(FlowError):  # Digression requested at the streak ceiling
    pass


class ReportUnavailable(FlowError):  # Report requested without an assessed turn or a report writer
    pass


class SessionBusy(FlowError):  # Another orchestration step is in flight
    pass


class StaleSession(FlowError):  # Result arrived for a superseded session generation
    pass


class PhaseError(FlowError):  # Operation not allowed in the current lifecycle phase
    def __init__(self, phase: str, event: str) -> None:
        super().__init__(f"event '{event}' not allowed in phase '{phase}'")
        self.phase = phase
        self.event = event


__all__ = [
    "CollaboratorUnavailable",
    "FlowError",
    "FollowUpLimitReached",
    "InvalidAssessment",
    "InvalidPlan",
    "InvalidTurnOutput",
    "PhaseError",
    "ReportUnavailable",
    "SessionBusy",
    "StaleSession",
]
