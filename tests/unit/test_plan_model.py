import json

import pytest
from pydantic import ValidationError

from flow_manager import InvalidPlan, Plan, Position, accept_plan
from flow_manager.agents.planner import PlanDraft


def test_accept_plan_from_mapping(plan_payload) -> None:
    plan = accept_plan(plan_payload)
    assert [topic.name for topic in plan.topics] == ["React", "Node.js"]
    assert len(plan.topics[1].questions) == 3
    assert plan.question(Position(topic_index=1, question_index=2)) == "How would you scale a Node.js service?"


def test_accept_plan_from_fenced_json(plan_payload) -> None:
    raw = "```json\n" + json.dumps(plan_payload) + "\n```"
    plan = accept_plan(raw)
    assert plan.topics[0].questions[0] == "How does the virtual DOM work?"


def test_accept_plan_from_planner_draft(plan_payload) -> None:
    plan = accept_plan(PlanDraft.model_validate(plan_payload))
    assert isinstance(plan, Plan)
    assert accept_plan(plan) is plan


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "not json",
        ["React"],
        {},
        {"topics": []},
        {"topics": [{"name": "React", "questions": []}]},
        {"topics": [{"name": "   ", "questions": ["Q"]}]},
        {"topics": [{"name": "React", "questions": ["Q", 7]}]},
        {"topics": [{"name": "React", "questions": "Q"}]},
    ],
)
def test_accept_plan_rejects_malformed_shapes(raw) -> None:
    with pytest.raises(InvalidPlan):
        accept_plan(raw)


def test_plan_is_immutable(plan_payload) -> None:
    plan = accept_plan(plan_payload)
    with pytest.raises(ValidationError):
        plan.topics = ()
    with pytest.raises(ValidationError):
        plan.topics[0].name = "Vue"


def test_plan_lookups_outside_bounds(plan_payload) -> None:
    plan = accept_plan(plan_payload)
    assert plan.topic(2) is None
    assert plan.question(Position(topic_index=0, question_index=2)) is None
    assert str(Position(topic_index=1, question_index=2)) == "T1Q2"
