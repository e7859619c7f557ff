from __future__ import annotations  # Append-only assessment log

from typing import Iterator, List, Tuple

from .models import AssessmentRecord


class SessionLog:  # Ordered audit trail of assessed answers
    def __init__(self) -> None:
        self._entries: List[AssessmentRecord] = []

    def append(self, record: AssessmentRecord) -> int:
        if not isinstance(record, AssessmentRecord):
            raise TypeError("session log accepts AssessmentRecord entries only")
        self._entries.append(record)
        return len(self._entries)

    @property
    def entries(self) -> Tuple[AssessmentRecord, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[AssessmentRecord]:
        return iter(self.entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __repr__(self) -> str:
        return f"SessionLog(entries={len(self._entries)})"


__all__ = ["SessionLog"]
