from __future__ import annotations  # Plan acceptance gate

import json
from typing import Any, Mapping

from pydantic import BaseModel, ValidationError

from .errors import InvalidPlan
from .models import Plan


def accept_plan(raw: Any) -> Plan:  # Validate a raw plan payload into an immutable Plan
    if raw is None:
        raise InvalidPlan("plan payload is empty")
    if isinstance(raw, Plan):
        return raw
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    if isinstance(raw, (str, bytes)):
        raw = _decode(raw)
    if not isinstance(raw, Mapping):
        raise InvalidPlan(f"plan must be an object, got {type(raw).__name__}")
    topics = raw.get("topics")
    if not isinstance(topics, (list, tuple)) or not topics:
        raise InvalidPlan("plan must contain at least one topic")
    try:
        return Plan.model_validate({"topics": [_topic_payload(item) for item in topics]})
    except ValidationError as exc:
        raise InvalidPlan(_first_error(exc)) from exc


def _decode(raw: str | bytes) -> Any:
    text = raw.decode("utf-8", "replace") if isinstance(raw, bytes) else raw
    text = text.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidPlan("plan is not valid JSON") from exc


def _topic_payload(item: Any) -> Any:  # Accept topic models as well as plain mappings
    if isinstance(item, BaseModel):
        return item.model_dump()
    return item


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "plan failed validation"
    first = errors[0]
    where = ".".join(str(part) for part in first.get("loc", ()))
    return f"{where}: {first.get('msg', 'invalid value')}" if where else str(first.get("msg"))


__all__ = ["accept_plan"]
