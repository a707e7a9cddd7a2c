"""Task submission: snapshot the issue, start a processor job, schedule the first poll."""

from __future__ import annotations

import base64
import logging
from typing import Any

from .config import INITIAL_POLL_DELAY_SEC
from .models import Task
from .processor import ProcessorClient
from .scheduler import DelayedQueue
from .tracker import JiraTracker

logger = logging.getLogger("jira-relay.submitter")


def is_image_attachment(attachment: dict[str, Any]) -> bool:
    return str(attachment.get("mimeType") or "").startswith("image")


class TaskSubmitter:
    def __init__(self, tracker: JiraTracker, processor: ProcessorClient, queue: DelayedQueue):
        self.tracker = tracker
        self.processor = processor
        self.queue = queue

    def build_snapshot(self, issue_key: str) -> dict[str, Any]:
        # Webhook payloads do not carry the description, so the issue is read again.
        issue = self.tracker.fetch_issue(issue_key)
        fields = issue.setdefault("fields", {})
        images = [a for a in fields.get("attachment") or [] if is_image_attachment(a)]
        for attachment in images:
            content = self.tracker.fetch_attachment(str(attachment["id"]))
            attachment["content"] = base64.b64encode(content).decode("ascii")
        fields["attachment"] = images
        return issue

    def submit(self, issue_key: str) -> Task:
        snapshot = self.build_snapshot(issue_key)
        logger.info(
            "sending issue=%s to processor attachments=%s",
            issue_key,
            len(snapshot["fields"]["attachment"]),
        )
        task_id = self.processor.create_event(snapshot)
        task = Task(task_id=task_id, issue_id=issue_key, attempt=0)
        self.queue.enqueue(task, INITIAL_POLL_DELAY_SEC)
        return task
