"""Span helper recording orchestration step timings on session state."""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator


@contextmanager
def span(state, name: str) -> Iterator[None]:
    start = time.perf_counter()
    failed = False
    try:
        yield
    except Exception:
        failed = True
        raise
    finally:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        event = {"span": name, "ms": elapsed_ms}
        if failed:
            event["failed"] = True
        state.events.append(event)


__all__ = ["span"]
