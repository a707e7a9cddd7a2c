"""Task value carried through the delayed queue."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True, slots=True)
class Task:
    """One processor job in flight.

    The task is the whole persisted state of the job: it lives inside the
    queued poll message and nowhere else.
    """

    task_id: str
    issue_id: str
    attempt: int = 0
    previous_comment_id: str | None = None

    def __post_init__(self) -> None:
        if self.attempt < 0:
            raise ValueError(f"attempt must be >= 0, got {self.attempt}")

    def next_attempt(self) -> Task:
        return replace(self, attempt=self.attempt + 1)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "task_id": self.task_id,
            "issue_id": self.issue_id,
            "attempt": self.attempt,
        }
        if self.previous_comment_id is not None:
            payload["previous_comment_id"] = self.previous_comment_id
        return payload

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Task:
        previous = payload.get("previous_comment_id")
        return cls(
            task_id=str(payload["task_id"]),
            issue_id=str(payload["issue_id"]),
            attempt=int(payload.get("attempt", 0)),
            previous_comment_id=str(previous) if previous is not None else None,
        )
