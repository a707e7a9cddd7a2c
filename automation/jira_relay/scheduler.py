"""Durable delayed queue for poll messages.

Messages are stored in a JSON file under the state directory. A message is
due once `not_before` has passed; claiming it leases it for a while, and a
lease that expires without an ack makes the message due again. Delivery is
therefore at-least-once and ordered per message only.
"""

from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from . import config
from .models import Task

logger = logging.getLogger("jira-relay.scheduler")

Clock = Callable[[], float]


@dataclass(frozen=True, slots=True)
class PollMessage:
    message_id: str
    task: Task
    not_before: float
    leased_until: float | None = None

    def to_record(self) -> dict[str, Any]:
        return {
            "payload": self.task.to_payload(),
            "not_before": self.not_before,
            "leased_until": self.leased_until,
        }

    @classmethod
    def from_record(cls, message_id: str, record: dict[str, Any]) -> PollMessage:
        leased_until = record.get("leased_until")
        return cls(
            message_id=message_id,
            task=Task.from_payload(record["payload"]),
            not_before=float(record["not_before"]),
            leased_until=float(leased_until) if leased_until is not None else None,
        )

    def is_due(self, now: float) -> bool:
        if self.not_before > now:
            return False
        return self.leased_until is None or self.leased_until <= now


class DelayedQueue:
    def __init__(
        self,
        path: Path | None = None,
        *,
        lease_seconds: int | None = None,
        clock: Clock = time.time,
    ):
        self.path = Path(path or config.QUEUE_FILE)
        self.lease_seconds = lease_seconds if lease_seconds is not None else config.QUEUE_LEASE_SEC
        self.clock = clock
        self._lock = threading.Lock()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {"messages": {}}
        raw = json.loads(self.path.read_text(encoding="utf-8"))
        messages = raw.get("messages", {}) if isinstance(raw, dict) else {}
        if not isinstance(messages, dict):
            logger.warning("queue file has no message table, starting empty file=%s", self.path)
            messages = {}
        return {"messages": messages}

    def _save(self, state: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(state, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(self.path)

    @staticmethod
    def _decode(message_id: str, record: Any) -> PollMessage | None:
        try:
            return PollMessage.from_record(message_id, record)
        except (AttributeError, KeyError, TypeError, ValueError):
            logger.warning("dropping unreadable queue record id=%s record=%r", message_id, record)
            return None

    def enqueue(self, task: Task, delay_seconds: int) -> None:
        message = PollMessage(uuid.uuid4().hex, task, self.clock() + delay_seconds)
        with self._lock:
            state = self._load()
            state["messages"][message.message_id] = message.to_record()
            self._save(state)
        logger.info(
            "enqueued task=%s issue=%s attempt=%s delay=%ss",
            task.task_id,
            task.issue_id,
            task.attempt,
            delay_seconds,
        )

    def claim_due(self) -> list[PollMessage]:
        now = self.clock()
        claimed: list[PollMessage] = []
        with self._lock:
            state = self._load()
            broken: list[str] = []
            for message_id, record in state["messages"].items():
                message = self._decode(message_id, record)
                if message is None:
                    broken.append(message_id)
                    continue
                if not message.is_due(now):
                    continue
                if message.leased_until is not None:
                    logger.warning("lease expired, redelivering task=%s", message.task.task_id)
                record["leased_until"] = now + self.lease_seconds
                claimed.append(message)
            for message_id in broken:
                del state["messages"][message_id]
            if claimed or broken:
                self._save(state)
        claimed.sort(key=lambda m: m.not_before)
        return claimed

    def ack(self, message_id: str) -> None:
        with self._lock:
            state = self._load()
            if state["messages"].pop(message_id, None) is not None:
                self._save(state)

    def pending(self) -> list[PollMessage]:
        with self._lock:
            state = self._load()
        messages = (self._decode(mid, record) for mid, record in state["messages"].items())
        return [message for message in messages if message is not None]


class QueueWorker(threading.Thread):
    """Delivers due poll messages to a handler until stopped."""

    def __init__(
        self,
        queue: DelayedQueue,
        handler: Callable[[Task], Any],
        *,
        interval: float | None = None,
    ):
        super().__init__(name="poll-queue-worker", daemon=True)
        self.queue = queue
        self.handler = handler
        self.interval = interval if interval is not None else config.QUEUE_POLL_INTERVAL_SEC
        self._stop_event = threading.Event()

    def run_once(self) -> int:
        delivered = 0
        for message in self.queue.claim_due():
            try:
                self.handler(message.task)
            except Exception:
                logger.exception(
                    "poll failed task=%s issue=%s attempt=%s",
                    message.task.task_id,
                    message.task.issue_id,
                    message.task.attempt,
                )
            finally:
                self.queue.ack(message.message_id)
            delivered += 1
        return delivered

    def run(self) -> None:
        logger.info("queue worker started file=%s interval=%ss", self.queue.path, self.interval)
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("queue pass failed file=%s", self.queue.path)
            self._stop_event.wait(self.interval)

    def stop(self) -> None:
        self._stop_event.set()
