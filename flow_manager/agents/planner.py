from __future__ import annotations  # Planner agent turning a job description into an interview plan

from textwrap import dedent
from typing import List

from pydantic import BaseModel, Field

from config import FlowSettings, LlmRoute
from llm_gateway import call

from ..errors import InvalidPlan
from .toolkit import clamp_text, gateway_errors


PLANNER_AGENT_KEY = "flow_manager.planner_agent"  # Registry key for planner route


class TopicDraft(BaseModel):  # Topic proposed by the planner
    name: str
    questions: List[str] = Field(min_length=1)


class PlanDraft(BaseModel):  # LLM-enforced plan payload
    topics: List[TopicDraft] = Field(min_length=1)


def generate_plan(
    job_description: str,
    *,
    route: LlmRoute,
    flow: FlowSettings | None = None,
) -> PlanDraft:  # Draft a plan via LLM
    task = _build_task(job_description, flow or FlowSettings())
    with gateway_errors("planner", InvalidPlan):
        return call(task, PlanDraft, cfg=route)


class PlannerAgent:  # Callable planner bound to one route
    def __init__(self, route: LlmRoute, *, flow: FlowSettings | None = None) -> None:
        self._route = route
        self._flow = flow or FlowSettings()

    def __call__(self, job_description: str) -> PlanDraft:
        return generate_plan(job_description, route=self._route, flow=self._flow)


def _build_task(job_description: str, flow: FlowSettings) -> str:  # Build task prompt for LLM
    return dedent(
        f"""
        Analyze the job description and plan a technical interview.
        Job description:
        {clamp_text(job_description, limit=4000)}

        Instructions:
        1. Identify {flow.topic_count} critical skill areas relevant to the job.
        2. For each area, write {flow.questions_per_topic} interview questions that progress in difficulty or depth.

        Respond with a JSON object following this contract:
        - topics: array with {flow.topic_count} items.
            Each item must contain:
              - name: concise skill area name.
              - questions: list of {flow.questions_per_topic} questions, ordered from foundational to advanced.
        Return only JSON without markdown fences, text, or commentary.
        """
    ).strip()


__all__ = ["PLANNER_AGENT_KEY", "PlanDraft", "PlannerAgent", "TopicDraft", "generate_plan"]
