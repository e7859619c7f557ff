from __future__ import annotations  # Interview flow value models

from enum import IntEnum
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


TurnKind = Literal["planned", "follow-up"]  # Classification of an interviewer turn
Phase = Literal["setup", "planning", "plan_accepted", "in_progress", "ended"]  # Session lifecycle


class ActionCode(IntEnum):  # Flow directive with fixed wire values
    REPEAT = 1
    CLARIFY = 2
    NEXT_QUESTION = 3
    NEXT_TOPIC = 4
    END = 5

    @property
    def is_retry(self) -> bool:
        return self in (ActionCode.REPEAT, ActionCode.CLARIFY)

    @property
    def label(self) -> str:
        return _ACTION_LABELS[self]


_ACTION_LABELS: Dict[ActionCode, str] = {
    ActionCode.REPEAT: "REPEAT_QUESTION",
    ActionCode.CLARIFY: "CLARIFY_QUESTION",
    ActionCode.NEXT_QUESTION: "NEXT_QUESTION",
    ActionCode.NEXT_TOPIC: "NEXT_TOPIC",
    ActionCode.END: "END_INTERVIEW",
}


class Topic(BaseModel):  # Named topic with ordered question prompts
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    questions: Tuple[str, ...] = Field(min_length=1)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("topic name must be a non-empty string")
        return cleaned

    @field_validator("questions", mode="before")
    @classmethod
    def _check_questions(cls, value: Any) -> Tuple[str, ...]:  # Reject blank or non-string prompts
        if isinstance(value, str) or not isinstance(value, (list, tuple)):
            raise ValueError("questions must be a list of strings")
        cleaned: List[str] = []
        for item in value:
            if not isinstance(item, str) or not item.strip():
                raise ValueError("every question must be a non-empty string")
            cleaned.append(item.strip())
        return tuple(cleaned)


class Plan(BaseModel):  # Immutable topics-to-questions tree
    model_config = ConfigDict(frozen=True)

    topics: Tuple[Topic, ...] = Field(min_length=1)

    def topic(self, index: int) -> Optional[Topic]:
        if 0 <= index < len(self.topics):
            return self.topics[index]
        return None

    def question(self, position: "Position") -> Optional[str]:
        topic = self.topic(position.topic_index)
        if topic is None or not 0 <= position.question_index < len(topic.questions):
            return None
        return topic.questions[position.question_index]


class Position(BaseModel):  # Zero-based (topic, question) coordinate
    model_config = ConfigDict(frozen=True)

    topic_index: int = Field(default=0, ge=0)
    question_index: int = Field(default=0, ge=0)

    def __str__(self) -> str:
        return f"T{self.topic_index}Q{self.question_index}"


class Metrics(BaseModel):  # Answer quality scores in [0, 1]
    model_config = ConfigDict(frozen=True)

    accuracy: float = Field(ge=0.0, le=1.0)
    relevance: float = Field(ge=0.0, le=1.0)
    clarity: float = Field(ge=0.0, le=1.0)
    completeness: float = Field(ge=0.0, le=1.0)


class AssessmentRecord(BaseModel):  # One assessed answer, appended to the session log
    model_config = ConfigDict(frozen=True)

    position: Position
    metrics: Metrics
    action_code: ActionCode
    reason: str = ""
    discussion_point: Optional[str] = None
    turn_kind: TurnKind = "planned"


class AttemptState(BaseModel):  # Retry count for the current planned question
    model_config = ConfigDict(frozen=True)

    position: Position = Field(default_factory=Position)
    count: int = Field(default=0, ge=0)

    def count_for(self, position: Position) -> int:
        return self.count if position == self.position else 0


class FollowUpState(BaseModel):  # Active digression and the planned point it displaced
    model_config = ConfigDict(frozen=True)

    paused_position: Position
    paused_attempts: int = Field(default=0, ge=0)
    resuming_action: ActionCode
    streak_count: int = Field(default=1, ge=1)
    question_text: str = ""


class Resolution(BaseModel):  # Resolver output applied by the orchestrator
    model_config = ConfigDict(frozen=True)

    effective_action: ActionCode
    next_position: Position
    is_terminal: bool = False


class ChatTurn(BaseModel):  # Transcript line shown to the candidate
    speaker: Literal["interviewer", "candidate", "system"]
    content: str
    kind: Optional[TurnKind] = None


class TurnResult(BaseModel):  # Outcome of one orchestration step
    session_id: str
    phase: Phase
    kind: TurnKind = "planned"
    text: str = ""
    action: Optional[ActionCode] = None
    position: Optional[Position] = None
    topic_name: Optional[str] = None
    system_messages: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def ended(self) -> bool:
        return self.phase == "ended"


__all__ = [
    "ActionCode",
    "AssessmentRecord",
    "AttemptState",
    "ChatTurn",
    "FollowUpState",
    "Metrics",
    "Phase",
    "Plan",
    "Position",
    "Resolution",
    "Topic",
    "TurnKind",
    "TurnResult",
]
