from __future__ import annotations  # Adaptive interview flow engine exports

from .attempts import record as record_attempt
from .contracts import (
    AssessmentPayload,
    AssessmentRequest,
    HistoryItem,
    ReportRequest,
    TurnOutput,
    TurnRequest,
    coerce_turn,
    parse_assessment,
    parse_turn,
)
from .errors import (
    CollaboratorUnavailable,
    FlowError,
    FollowUpLimitReached,
    InvalidAssessment,
    InvalidPlan,
    InvalidTurnOutput,
    PhaseError,
    ReportUnavailable,
    SessionBusy,
    StaleSession,
)
from .models import (
    ActionCode,
    AssessmentRecord,
    AttemptState,
    ChatTurn,
    FollowUpState,
    Metrics,
    Phase,
    Plan,
    Position,
    Resolution,
    Topic,
    TurnKind,
    TurnResult,
)
from .orchestrator import FALLBACK_CLOSING_NOTE, FOLLOW_UP_LIMIT_MESSAGE, TurnOrchestrator, compose_answer
from .phases import next_phase
from .plan import accept_plan
from .resolver import resolve, settle
from .session_log import SessionLog
from .state import Collaborators, SessionState

__all__ = [
    "ActionCode",
    "AssessmentPayload",
    "AssessmentRecord",
    "AssessmentRequest",
    "AttemptState",
    "ChatTurn",
    "CollaboratorUnavailable",
    "Collaborators",
    "FALLBACK_CLOSING_NOTE",
    "FOLLOW_UP_LIMIT_MESSAGE",
    "FlowError",
    "FollowUpLimitReached",
    "FollowUpState",
    "HistoryItem",
    "InvalidAssessment",
    "InvalidPlan",
    "InvalidTurnOutput",
    "Metrics",
    "Phase",
    "PhaseError",
    "Plan",
    "Position",
    "ReportRequest",
    "ReportUnavailable",
    "Resolution",
    "SessionBusy",
    "SessionLog",
    "SessionState",
    "StaleSession",
    "Topic",
    "TurnKind",
    "TurnOrchestrator",
    "TurnOutput",
    "TurnRequest",
    "TurnResult",
    "accept_plan",
    "coerce_turn",
    "compose_answer",
    "next_phase",
    "parse_assessment",
    "parse_turn",
    "record_attempt",
    "resolve",
    "settle",
]
