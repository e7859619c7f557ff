from __future__ import annotations  # Reporter agent writing the post-interview narrative

from textwrap import dedent

from pydantic import BaseModel

from config import LlmRoute
from llm_gateway import call
from session_reports.summary import format_log

from ..contracts import ReportRequest
from ..errors import ReportUnavailable
from .toolkit import gateway_errors


REPORTER_AGENT_KEY = "flow_manager.reporter_agent"  # Registry key for reporter route


class ReportDraft(BaseModel):  # LLM-enforced report payload
    narrative: str

    @classmethod
    def from_raw_content(cls, content: str) -> "ReportDraft":  # Accept a plain-text report
        text = content.strip()
        if not text:
            raise ValueError("empty report")
        return cls(narrative=text)


class ReporterAgent:  # Callable report writer bound to one route
    def __init__(self, route: LlmRoute) -> None:
        self._route = route

    def __call__(self, request: ReportRequest) -> str:
        with gateway_errors("reporter", ReportUnavailable):
            draft = call(_build_task(request), ReportDraft, cfg=self._route)
        return draft.narrative.strip()


def _build_task(request: ReportRequest) -> str:  # Build task prompt for LLM
    log_text = format_log(request.entries, request.plan)
    return (
        dedent(
            """
            Based on the following interview log, write a detailed analysis of the candidate's performance.
            Cover strengths, areas for improvement, and an overall assessment.
            Put the whole report in the "narrative" field of a JSON object.
            The log is as follows:
            """
        ).strip()
        + "\n\n"
        + log_text
    )


__all__ = ["REPORTER_AGENT_KEY", "ReportDraft", "ReporterAgent"]
