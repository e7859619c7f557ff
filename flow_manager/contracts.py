from __future__ import annotations  # Collaborator request/response contracts

import json
import logging
from typing import Any, Callable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import InvalidAssessment, InvalidTurnOutput
from .models import ActionCode, AssessmentRecord, Metrics, Plan, Position, TurnKind


logger = logging.getLogger(__name__)


class TurnRequest(BaseModel):  # Input for the turn-text collaborator
    topic_name: str
    question_text: str
    action: ActionCode
    previous_turn_text: Optional[str] = None
    previous_answer: Optional[str] = None
    discussion_hint: Optional[str] = None
    allow_follow_up: bool = True


class TurnOutput(BaseModel):  # Normalized turn-text collaborator reply
    kind: TurnKind = "planned"
    text: str = ""


class HistoryItem(BaseModel):  # Prior exchange on the same question
    question_text: str
    answer_text: str


class AssessmentRequest(BaseModel):  # Input for the assessment collaborator
    position: Position
    question_text: str
    answer_text: str
    history: List[HistoryItem] = Field(default_factory=list)
    is_follow_up: bool = False


class AssessmentPayload(BaseModel):  # Assessment wire shape with camelCase aliases
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    topic_index: Optional[int] = Field(default=None, alias="topicIndex")
    question_index: Optional[int] = Field(default=None, alias="questionIndex")
    metrics: Metrics
    action_code: ActionCode = Field(alias="actionCode")
    reason: str = ""
    discussion_point: Optional[str] = None

    @field_validator("action_code", mode="before")
    @classmethod
    def _reject_bool(cls, value: Any) -> Any:  # JSON true/false is not an action code
        if isinstance(value, bool):
            raise ValueError("actionCode must be an integer from 1 to 5")
        return value


class ReportRequest(BaseModel):  # Input for the report collaborator
    plan: Optional[Plan] = None
    entries: Tuple[AssessmentRecord, ...]


def parse_turn(raw: Any) -> TurnOutput:  # Strict turn parser
    data = _as_mapping(raw)
    if data is None:
        raise InvalidTurnOutput(f"turn output must be an object, got {type(raw).__name__}")
    kind = data.get("kind", data.get("type"))
    if kind not in ("planned", "follow-up"):
        raise InvalidTurnOutput(f"unknown turn kind: {kind!r}")
    text = data.get("text")
    if not isinstance(text, str):
        raise InvalidTurnOutput("turn text must be a string")
    return TurnOutput(kind=kind, text=text.strip())


def coerce_turn(raw: Any, action: ActionCode) -> TurnOutput:  # Recover malformed turn output as a planned turn
    """Normalize a turn reply, never failing.

    An unknown kind becomes ``planned``; a non-string text becomes empty.
    Closing turns are always ``planned``.
    """

    try:
        output = parse_turn(raw)
    except InvalidTurnOutput as exc:
        logger.warning("Recovering turn output as planned: %s", exc)
        data = _as_mapping(raw) or {}
        text = data.get("text")
        output = TurnOutput(kind="planned", text=text.strip() if isinstance(text, str) else "")
    if ActionCode(action) is ActionCode.END and output.kind != "planned":
        output = output.model_copy(update={"kind": "planned"})
    return output


def parse_assessment(raw: Any, *, position: Position, turn_kind: TurnKind) -> AssessmentRecord:  # Validate assessment into a log record
    data = _as_mapping(raw)
    if data is None:
        raise InvalidAssessment(f"assessment must be an object, got {type(raw).__name__}")
    try:
        payload = AssessmentPayload.model_validate(data)
    except ValidationError as exc:
        raise InvalidAssessment(_summarize(exc)) from exc
    if payload.topic_index is not None and payload.topic_index != position.topic_index:
        logger.info("Assessment echoed topic %s for %s", payload.topic_index, position)
    hint = (payload.discussion_point or "").strip() or None
    return AssessmentRecord(
        position=position,
        metrics=payload.metrics,
        action_code=payload.action_code,
        reason=payload.reason.strip(),
        discussion_point=hint,
        turn_kind=turn_kind,
    )


def _as_mapping(raw: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(raw, BaseModel):
        return raw.model_dump(by_alias=True)
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            return None
    if isinstance(raw, Mapping):
        return raw
    return None


def _summarize(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors()[:3]:
        where = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{where}: {error.get('msg')}")
    return "; ".join(parts) or "assessment failed validation"


PlanSource = Callable[[str], Any]  # Job description -> raw plan
TurnSource = Callable[[TurnRequest], Any]  # Turn request -> raw turn output
AssessmentSource = Callable[[AssessmentRequest], Any]  # Assessment request -> raw assessment
ReportSource = Callable[[ReportRequest], str]  # Session log -> narrative


__all__ = [
    "AssessmentPayload",
    "AssessmentRequest",
    "AssessmentSource",
    "HistoryItem",
    "PlanSource",
    "ReportRequest",
    "ReportSource",
    "TurnOutput",
    "TurnRequest",
    "TurnSource",
    "coerce_turn",
    "parse_assessment",
    "parse_turn",
]
