"""Pydantic schemas for the interview session API."""
from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from flow_manager import AssessmentRecord, ChatTurn, Phase, TurnKind


class StartReq(BaseModel):
    job_description: str
    session_id: Optional[str] = None


class AnswerReq(BaseModel):
    session_id: str
    answer: str = ""
    code: Optional[str] = None


class PositionPayload(BaseModel):
    topic_index: int
    question_index: int


class TurnResp(BaseModel):
    session_id: str
    phase: Phase
    kind: TurnKind = "planned"
    text: str = ""
    action: Optional[int] = None
    action_name: Optional[str] = None
    position: Optional[PositionPayload] = None
    topic_name: Optional[str] = None
    system_messages: List[str] = Field(default_factory=list)
    error: Optional[str] = None


class FollowUpPayload(BaseModel):
    paused_position: PositionPayload
    paused_attempts: int
    streak_count: int
    question_text: str


class SessionResp(BaseModel):
    session_id: str
    phase: Phase
    position: Optional[PositionPayload] = None
    attempts: int = 0
    follow_up: Optional[FollowUpPayload] = None
    follow_up_streak: int = 0
    plan: Optional[Dict] = None
    transcript: List[ChatTurn] = Field(default_factory=list)
    error: Optional[str] = None


class LogResp(BaseModel):
    session_id: str
    entries: List[AssessmentRecord] = Field(default_factory=list)


class ReportResp(BaseModel):
    session_id: str
    narrative: str
    entries: int


class FinishResp(BaseModel):
    session_id: str
    status: Literal["finished"] = "finished"


class FinishReq(BaseModel):
    session_id: str
