from __future__ import annotations  # Shared helpers for interview collaborator agents

from contextlib import contextmanager
from typing import Iterator, Optional, Sequence, Type

from llm_gateway import LlmOutputError, LlmTransportError

from ..contracts import HistoryItem
from ..errors import CollaboratorUnavailable, FlowError


def clamp_text(text: Optional[str], limit: int = 600) -> str:  # Compact whitespace and clip length
    compact = " ".join((text or "").split())
    if len(compact) <= limit:
        return compact
    return compact[: limit - 1].rstrip() + "…"


def quoted(text: Optional[str], *, fallback: str = "(none)", limit: int = 600) -> str:
    cleaned = clamp_text(text, limit=limit)
    return f'"{cleaned}"' if cleaned else fallback


def history_block(history: Sequence[HistoryItem], *, limit: int = 400) -> str:  # Render prior attempts on one question
    if not history:
        return "This was the first attempt for this question."
    lines = []
    for index, item in enumerate(history, start=1):
        lines.append(
            f"Attempt {index}: Interviewer: {clamp_text(item.question_text, limit)}\n"
            f"Candidate: {clamp_text(item.answer_text, limit)}"
        )
    return "\n\n".join(lines)


@contextmanager
def gateway_errors(collaborator: str, output_error: Type[FlowError]) -> Iterator[None]:  # Translate gateway failures into flow errors
    try:
        yield
    except LlmOutputError as exc:
        raise output_error(f"{collaborator} reply failed validation: {exc}") from exc
    except LlmTransportError as exc:
        raise CollaboratorUnavailable(collaborator, str(exc)) from exc


__all__ = ["clamp_text", "gateway_errors", "history_block", "quoted"]
