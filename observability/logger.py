"""Structured logging utilities for interview flow control."""
from __future__ import annotations

import json
import logging
import logging.handlers
import os
import sys
import time
import uuid
from typing import Any

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ENABLE_FILE_LOGS = os.getenv("ENABLE_FILE_LOGS", "0") in ("1", "true", "True")
LOG_FILE = os.getenv("LOG_FILE", "logs/interview-flow.log")
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", "5242880"))
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "5"))

_HUMAN_FORMAT = "[%(asctime)s] %(levelname)s %(name)s :: %(message)s"
_HUMAN_KEYS = ("phase", "position", "action", "requested", "kind", "streak", "attempts", "reason", "ms")

_logger = logging.getLogger("interview_flow")
_logger.setLevel(LOG_LEVEL)
_logger.propagate = False


def _human_formatter() -> logging.Formatter:
    return logging.Formatter(_HUMAN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


def _rotating(path: str, *, json_lines: bool) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
    )
    handler.setLevel(LOG_LEVEL)
    if json_lines:
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler.addFilter(lambda record: getattr(record, "is_json", False) is True)
    else:
        handler.setFormatter(_human_formatter())
        handler.addFilter(lambda record: getattr(record, "is_json", False) is not True)
    return handler


def _ensure_handlers() -> None:
    if _logger.handlers:
        return

    # Console carries human lines only
    console = logging.StreamHandler(stream=sys.stdout)
    console.setLevel(LOG_LEVEL)
    console.setFormatter(_human_formatter())
    console.addFilter(lambda record: getattr(record, "is_json", False) is not True)
    _logger.addHandler(console)

    if not ENABLE_FILE_LOGS:
        return

    log_dir = os.path.dirname(LOG_FILE)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    human_file = LOG_FILE if LOG_FILE.endswith(".log") else f"{LOG_FILE}.log"
    _logger.addHandler(_rotating(LOG_FILE, json_lines=True))
    _logger.addHandler(_rotating(human_file.replace(".log", "-human.log"), json_lines=False))


def _format_human(evt: dict[str, Any]) -> str:
    base = f"session={evt.get('session_id')} kind={evt.get('kind')}"
    extras = [f"{key}={evt[key]}" for key in _HUMAN_KEYS if key in evt and key != "kind"]
    if "turn_kind" in evt:
        extras.append(f"turn={evt['turn_kind']}")
    return base + (" " + " ".join(extras) if extras else "")


def _emit(message: str, *, is_json: bool, level: int) -> None:
    record = _logger.makeRecord(
        name=_logger.name,
        level=level,
        fn="",
        lno=0,
        msg=message,
        args=(),
        exc_info=None,
    )
    record.is_json = is_json  # type: ignore[attr-defined]
    _logger.handle(record)


def log_event(kind: str, session_id: str, **fields: Any) -> dict[str, Any]:
    """Emit a human line to console/file and a JSON line to the file log.

    Returns the payload so callers can mirror it into session events.
    """

    _ensure_handlers()

    payload: dict[str, Any] = {
        "ts": time.time(),
        "trace": str(uuid.uuid4()),
        "kind": kind,
        "session_id": session_id,
    }
    payload.update(fields)
    level = logging.WARNING if kind.endswith((".discarded", ".override")) else logging.INFO

    _emit(_format_human(payload), is_json=False, level=level)
    if ENABLE_FILE_LOGS:
        _emit(json.dumps(payload, ensure_ascii=False, default=str), is_json=True, level=level)
    return payload


__all__ = ["log_event"]
