"""Helpers for creating and looking up live interview sessions."""
from __future__ import annotations

import threading
import uuid
from typing import Dict, Optional

from config import FlowSettings, INTERVIEWER_KEY, MONITOR_KEY, PLANNER_KEY, REPORTER_KEY, get_model, is_bound
from flow_manager import Collaborators, TurnOrchestrator
from observability import log_event

_SESSIONS: Dict[str, TurnOrchestrator] = {}
_LOCK = threading.Lock()
_FLOW: Optional[FlowSettings] = None


def configure_flow(flow: Optional[FlowSettings]) -> None:
    """Set the flow settings used for sessions created from now on."""

    global _FLOW
    _FLOW = flow


def registry_collaborators() -> Collaborators:
    """Resolve collaborators from the model registry.

    Raises:
        KeyError: If the planner, interviewer or monitor is not bound.
    """

    return Collaborators(
        planner=get_model(PLANNER_KEY),
        interviewer=get_model(INTERVIEWER_KEY),
        monitor=get_model(MONITOR_KEY),
        reporter=get_model(REPORTER_KEY) if is_bound(REPORTER_KEY) else None,
    )


def new_session(session_id: Optional[str] = None) -> TurnOrchestrator:
    """Create an orchestrator for a new session, or reuse the one registered under ``session_id``."""

    with _LOCK:
        if session_id and session_id in _SESSIONS:
            return _SESSIONS[session_id]
        orchestrator = TurnOrchestrator(
            registry_collaborators(),
            flow=_FLOW,
            session_id=session_id or str(uuid.uuid4()),
        )
        _SESSIONS[orchestrator.session_id] = orchestrator
    return orchestrator


def load_session(session_id: str) -> Optional[TurnOrchestrator]:
    """Return the live orchestrator for ``session_id`` if present."""

    with _LOCK:
        return _SESSIONS.get(session_id)


def finish_session(session_id: str) -> bool:
    """Tear down and forget a session. Returns False when it was unknown."""

    with _LOCK:
        orchestrator = _SESSIONS.pop(session_id, None)
    if orchestrator is None:
        return False
    orchestrator.teardown()
    log_event("session.finished", session_id)
    return True


def reset_sessions() -> None:
    with _LOCK:
        _SESSIONS.clear()


__all__ = [
    "configure_flow",
    "finish_session",
    "load_session",
    "new_session",
    "registry_collaborators",
    "reset_sessions",
]
