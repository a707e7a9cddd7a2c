"""Webhook event dispatch and the rerun command."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from .comments import CommentReconciler
from .events import Ignore, Rerun, StartProcessing, classify, decode_event
from .models import Task
from .submitter import TaskSubmitter

logger = logging.getLogger("jira-relay.dispatch")


@dataclass(slots=True)
class DispatchResult:
    ok: bool
    action: str
    issue_key: str
    task_id: str | None = None
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


class RerunHandler:
    def __init__(self, reconciler: CommentReconciler, submitter: TaskSubmitter):
        self.reconciler = reconciler
        self.submitter = submitter

    def on_rerun(self, issue_key: str, comment_id: str) -> Task:
        # A rerun starts a new task; its result lands in a new comment.
        self.reconciler.delete_comment(issue_key, comment_id)
        return self.submitter.submit(issue_key)


class EventDispatcher:
    def __init__(self, submitter: TaskSubmitter, rerun: RerunHandler):
        self.submitter = submitter
        self.rerun = rerun

    def handle(self, payload: Any) -> DispatchResult:
        event = decode_event(payload)
        logger.info("processing event=%s issue=%s", event.event_type, event.issue_key)
        intent = classify(event)

        if isinstance(intent, StartProcessing):
            task = self.submitter.submit(intent.issue_key)
            return DispatchResult(True, "submitted", intent.issue_key, task_id=task.task_id)

        if isinstance(intent, Rerun):
            logger.info("rerun comment detected issue=%s comment=%s", intent.issue_key, intent.comment_id)
            task = self.rerun.on_rerun(intent.issue_key, intent.comment_id)
            return DispatchResult(True, "rerun", intent.issue_key, task_id=task.task_id)

        if not isinstance(intent, Ignore):
            raise TypeError(f"unhandled intent {intent!r}")
        logger.info("ignoring event=%s issue=%s reason=%s", event.event_type, event.issue_key, intent.reason)
        return DispatchResult(intent.supported, "ignored", event.issue_key, reason=intent.reason)
