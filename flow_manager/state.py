"""Mutable session aggregate owned by the turn orchestrator."""
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .contracts import AssessmentSource, HistoryItem, PlanSource, ReportSource, TurnSource
from .models import AttemptState, ChatTurn, FollowUpState, Phase, Plan, Position
from .session_log import SessionLog


class SessionState(BaseModel):
    """Everything one interview session needs between orchestration steps."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    session_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    generation: int = 0
    phase: Phase = "setup"
    job_description: str = ""

    plan: Optional[Plan] = None
    position: Position = Field(default_factory=Position)
    attempts: AttemptState = Field(default_factory=AttemptState)
    follow_up: Optional[FollowUpState] = None
    follow_up_streak: int = 0
    log: SessionLog = Field(default_factory=SessionLog)

    question_history: List[HistoryItem] = Field(default_factory=list)
    follow_up_history: List[HistoryItem] = Field(default_factory=list)
    last_turn_text: Optional[str] = None
    last_answer: Optional[str] = None
    discussion_hint: Optional[str] = None

    transcript: List[ChatTurn] = Field(default_factory=list)
    events: List[Dict[str, Any]] = Field(default_factory=list)
    busy: bool = False
    error: Optional[str] = None
    narrative: Optional[str] = None

    def current_question(self) -> Optional[str]:
        if self.plan is None:
            return None
        return self.plan.question(self.position)

    def current_topic_name(self) -> Optional[str]:
        if self.plan is None:
            return None
        topic = self.plan.topic(self.position.topic_index)
        return topic.name if topic else None

    def say(self, speaker: str, content: str, **extra: Any) -> None:
        self.transcript.append(ChatTurn(speaker=speaker, content=content, **extra))


class Collaborators(BaseModel):
    """Callables that produce plan, turn text, assessments and reports."""

    planner: PlanSource
    interviewer: TurnSource
    monitor: AssessmentSource
    reporter: Optional[ReportSource] = None


__all__ = ["Collaborators", "SessionState"]
