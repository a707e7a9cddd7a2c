"""Status polling: the task lifecycle state machine."""

from __future__ import annotations

import enum
import logging

from .adf import markdown_to_adf
from .comments import CommentReconciler
from .config import MAX_ATTEMPTS, RETRY_POLL_DELAY_SEC
from .models import Task
from .processor import ProcessorClient
from .scheduler import DelayedQueue

logger = logging.getLogger("jira-relay.poller")

STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


class PollOutcome(enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    EXHAUSTED = "exhausted"


class StatusPoller:
    def __init__(self, processor: ProcessorClient, reconciler: CommentReconciler, queue: DelayedQueue):
        self.processor = processor
        self.reconciler = reconciler
        self.queue = queue

    def on_poll(self, task: Task) -> PollOutcome:
        logger.info("checking status task=%s attempt=%s", task.task_id, task.attempt)
        result = self.processor.get_results(task.task_id)
        status = result.get("status")

        if status == STATUS_COMPLETED:
            previous = result.get("previous_comment_id")
            previous_comment_id = str(previous) if previous is not None else task.previous_comment_id
            if previous_comment_id is not None:
                logger.info("previous comment task=%s comment=%s", task.task_id, previous_comment_id)
            doc = markdown_to_adf(str(result.get("result") or ""))
            self.reconciler.publish(task.task_id, task.issue_id, doc, previous_comment_id)
            return PollOutcome.COMPLETED

        if status == STATUS_FAILED:
            logger.warning("task=%s status=failed issue=%s; no comment posted", task.task_id, task.issue_id)
            return PollOutcome.FAILED

        if task.attempt < MAX_ATTEMPTS:
            following = task.next_attempt()
            logger.info(
                "task=%s status=%s retrying in %ss attempt=%s",
                task.task_id,
                status,
                RETRY_POLL_DELAY_SEC,
                following.attempt,
            )
            self.queue.enqueue(following, RETRY_POLL_DELAY_SEC)
            return PollOutcome.PENDING

        logger.warning(
            "task=%s status=%s maximum attempts reached; terminating retries", task.task_id, status
        )
        return PollOutcome.EXHAUSTED
