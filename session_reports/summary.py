from __future__ import annotations  # Plain-text rendering of the assessment log

import json
from typing import Iterable, List, Optional, Sequence

from flow_manager.models import AssessmentRecord, Plan


def format_entry(index: int, record: AssessmentRecord, plan: Optional[Plan] = None) -> str:  # Render one log entry
    position = record.position
    heading = (
        f"Question {index} (Topic {position.topic_index}, Question {position.question_index}, "
        f"Type: {record.turn_kind})"
    )
    lines: List[str] = [heading + ":"]
    label = _question_label(plan, record)
    if label:
        lines.append(label)
    lines.append("Metrics: " + json.dumps(record.metrics.model_dump(), indent=2))
    lines.append(f"Action: {record.action_code.label}")
    lines.append(f"Reason: {record.reason}")
    if record.discussion_point:
        lines.append(f"Discussion Point: {record.discussion_point}")
    return "\n".join(lines)


def format_log(entries: Iterable[AssessmentRecord], plan: Optional[Plan] = None) -> str:  # Render the whole log in turn order
    return "\n\n".join(format_entry(index, record, plan) for index, record in enumerate(entries, start=1))


def average_metrics(entries: Sequence[AssessmentRecord]) -> dict[str, float]:
    if not entries:
        return {}
    totals = {"accuracy": 0.0, "relevance": 0.0, "clarity": 0.0, "completeness": 0.0}
    for record in entries:
        for key, value in record.metrics.model_dump().items():
            totals[key] += value
    return {key: round(total / len(entries), 2) for key, total in totals.items()}


def _question_label(plan: Optional[Plan], record: AssessmentRecord) -> str:
    if plan is None:
        return ""
    topic = plan.topic(record.position.topic_index)
    question = plan.question(record.position)
    if topic is None or question is None:
        return ""
    prefix = "Follow-up to" if record.turn_kind == "follow-up" else "Planned"
    return f"{prefix} [{topic.name}] {question}"


__all__ = ["average_metrics", "format_entry", "format_log"]
