import pytest

from flow_manager import SessionState
from observability import log_event, span


def test_log_event_returns_payload() -> None:
    payload = log_event("turn.delivered", "s-1", position="T0Q1", action="NEXT_QUESTION")
    assert payload["kind"] == "turn.delivered"
    assert payload["session_id"] == "s-1"
    assert payload["position"] == "T0Q1"
    assert "ts" in payload and "trace" in payload


def test_span_records_timing() -> None:
    state = SessionState()
    with span(state, "monitor"):
        pass
    assert state.events[-1]["span"] == "monitor"
    assert state.events[-1]["ms"] >= 0
    assert "failed" not in state.events[-1]


def test_span_flags_failures() -> None:
    state = SessionState()
    with pytest.raises(RuntimeError):
        with span(state, "planner"):
            raise RuntimeError("boom")
    assert state.events[-1] == {"span": "planner", "ms": state.events[-1]["ms"], "failed": True}
