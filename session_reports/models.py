from __future__ import annotations  # Session report domain models

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

from flow_manager.models import AssessmentRecord, Plan


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SessionReport(BaseModel):  # Assessment log plus narrative for one session
    session_id: str
    plan: Optional[Plan] = None
    entries: List[AssessmentRecord] = Field(default_factory=list)
    narrative: str = ""
    job_description: str = ""
    created_at: str = Field(default_factory=_now)


__all__ = ["SessionReport"]
