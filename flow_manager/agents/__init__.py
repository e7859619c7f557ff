from __future__ import annotations  # LLM-backed collaborators for the interview flow engine

from pathlib import Path
from typing import Dict, Tuple, Type

from pydantic import BaseModel

from config import (
    INTERVIEWER_KEY,
    MONITOR_KEY,
    PLANNER_KEY,
    REPORTER_KEY,
    FlowSettings,
    LlmRoute,
    bind_model,
    load_config,
    resolve_registry,
)

from ..contracts import AssessmentPayload
from ..state import Collaborators
from .interviewer import INTERVIEWER_AGENT_KEY, INTERVIEWER_GUIDANCE, InterviewerAgent, TurnDraft
from .monitor import MONITOR_AGENT_KEY, MONITOR_GUIDANCE, MonitorAgent
from .planner import PLANNER_AGENT_KEY, PlanDraft, PlannerAgent, generate_plan
from .reporter import REPORTER_AGENT_KEY, ReportDraft, ReporterAgent


AGENT_SCHEMAS: Dict[str, Type[BaseModel]] = {  # Agent registry keys and their output schemas
    PLANNER_AGENT_KEY: PlanDraft,
    INTERVIEWER_AGENT_KEY: TurnDraft,
    MONITOR_AGENT_KEY: AssessmentPayload,
    REPORTER_AGENT_KEY: ReportDraft,
}


def build_collaborators(
    registry: Dict[str, Tuple[LlmRoute, Type[BaseModel]]],
    flow: FlowSettings | None = None,
) -> Collaborators:  # Instantiate agents from a resolved route registry
    planner_route, _ = registry[PLANNER_AGENT_KEY]
    interviewer_route, interviewer_schema = registry[INTERVIEWER_AGENT_KEY]
    monitor_route, monitor_schema = registry[MONITOR_AGENT_KEY]
    if not issubclass(interviewer_schema, TurnDraft):
        raise TypeError("Interviewer agent requires TurnDraft schema")
    if not issubclass(monitor_schema, AssessmentPayload):
        raise TypeError("Monitor agent requires AssessmentPayload schema")
    reporter = None
    if REPORTER_AGENT_KEY in registry:
        reporter_route, _ = registry[REPORTER_AGENT_KEY]
        reporter = ReporterAgent(reporter_route)
    return Collaborators(
        planner=PlannerAgent(planner_route, flow=flow),
        interviewer=InterviewerAgent(interviewer_route, interviewer_schema),
        monitor=MonitorAgent(monitor_route, monitor_schema),
        reporter=reporter,
    )


def collaborators_with_config(config_path: Path) -> Tuple[Collaborators, FlowSettings]:  # Convenience helper using app config
    cfg = load_config(config_path)
    registry = resolve_registry(cfg, AGENT_SCHEMAS)
    return build_collaborators(registry, cfg.flow), cfg.flow


def bind_llm_collaborators(config_path: Path) -> FlowSettings:  # Bind LLM agents into the model registry
    collaborators, flow = collaborators_with_config(config_path)
    bind_model(PLANNER_KEY, collaborators.planner)
    bind_model(INTERVIEWER_KEY, collaborators.interviewer)
    bind_model(MONITOR_KEY, collaborators.monitor)
    if collaborators.reporter is not None:
        bind_model(REPORTER_KEY, collaborators.reporter)
    return flow


__all__ = [
    "AGENT_SCHEMAS",
    "INTERVIEWER_AGENT_KEY",
    "INTERVIEWER_GUIDANCE",
    "InterviewerAgent",
    "MONITOR_AGENT_KEY",
    "MONITOR_GUIDANCE",
    "MonitorAgent",
    "PLANNER_AGENT_KEY",
    "PlanDraft",
    "PlannerAgent",
    "REPORTER_AGENT_KEY",
    "ReportDraft",
    "ReporterAgent",
    "TurnDraft",
    "bind_llm_collaborators",
    "build_collaborators",
    "collaborators_with_config",
    "generate_plan",
]
