import copy
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import FlowSettings
from config.registry import INTERVIEWER_KEY, MONITOR_KEY, PLANNER_KEY, REPORTER_KEY, bind_model, clear_models
from flow_manager import ActionCode, Collaborators, TurnOrchestrator
from services.sessions import configure_flow, reset_sessions


WALKTHROUGH_PLAN = {
    "topics": [
        {
            "name": "React",
            "questions": [
                "How does the virtual DOM work?",
                "When would you reach for useMemo?",
            ],
        },
        {
            "name": "Node.js",
            "questions": [
                "Describe the event loop.",
                "How do streams handle backpressure?",
                "How would you scale a Node.js service?",
            ],
        },
    ]
}

CLOSING_TEXT = "Thank you for your time. That concludes our interview."


def assessment(action, *, score=0.7, reason="ok", discussion_point=None, topic=0, question=0):
    return {
        "topicIndex": topic,
        "questionIndex": question,
        "metrics": {"accuracy": score, "relevance": score, "clarity": score, "completeness": score},
        "actionCode": int(action),
        "reason": reason,
        "discussion_point": discussion_point,
    }


class ScriptedInterviewer:
    """Echo planned questions; emit follow-ups when the script says so."""

    def __init__(self, kinds=None, closing=CLOSING_TEXT):
        self.kinds = list(kinds or [])
        self.closing = closing
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if request.action is ActionCode.END:
            return {"type": "planned", "text": self.closing}
        kind = self.kinds.pop(0) if self.kinds else "planned"
        if kind == "follow-up":
            return {"type": "follow-up", "text": f"Can you give an example about {request.topic_name}?"}
        return {"type": "planned", "text": request.question_text}


class ScriptedMonitor:
    """Return queued action codes as assessments."""

    def __init__(self, actions, discussion_points=None):
        self.actions = list(actions)
        self.discussion_points = list(discussion_points or [])
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        action = self.actions.pop(0)
        hint = self.discussion_points.pop(0) if self.discussion_points else None
        return assessment(
            action,
            discussion_point=hint,
            topic=request.position.topic_index,
            question=request.position.question_index,
        )


@pytest.fixture(autouse=True)
def reset_registry():
    clear_models()
    reset_sessions()
    configure_flow(None)
    try:
        yield
    finally:
        clear_models()
        reset_sessions()
        configure_flow(None)


@pytest.fixture
def plan_payload():
    return copy.deepcopy(WALKTHROUGH_PLAN)


@pytest.fixture
def build_orchestrator(plan_payload):
    def _build(actions, *, kinds=None, plan=None, flow=None, reporter=None, closing=CLOSING_TEXT):
        interviewer = ScriptedInterviewer(kinds, closing=closing)
        monitor = ScriptedMonitor(actions)
        collaborators = Collaborators(
            planner=lambda _description: plan if plan is not None else plan_payload,
            interviewer=interviewer,
            monitor=monitor,
            reporter=reporter,
        )
        orchestrator = TurnOrchestrator(collaborators, flow=flow or FlowSettings())
        return orchestrator, interviewer, monitor

    return _build


@pytest.fixture
def fake_models(plan_payload):
    interviewer = ScriptedInterviewer()
    monitor = ScriptedMonitor([])
    bind_model(PLANNER_KEY, lambda _description: plan_payload)
    bind_model(INTERVIEWER_KEY, interviewer)
    bind_model(MONITOR_KEY, monitor)
    bind_model(REPORTER_KEY, lambda request: f"Candidate answered {len(request.entries)} questions.")
    return {"interviewer": interviewer, "monitor": monitor, "actions": monitor.actions}
