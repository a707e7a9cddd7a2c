"""Comment reconciliation: create a result comment or update the earlier one."""

from __future__ import annotations

import logging
from typing import Any

from .processor import ProcessorClient
from .tracker import JiraTracker

logger = logging.getLogger("jira-relay.comments")


class CommentReconciler:
    def __init__(self, tracker: JiraTracker, processor: ProcessorClient):
        self.tracker = tracker
        self.processor = processor

    def create_comment(self, issue_id: str, doc: dict[str, Any]) -> str:
        created = self.tracker.create_comment(issue_id, doc)
        comment_id = str(created["id"])
        logger.info("comment added issue=%s comment=%s", issue_id, comment_id)
        return comment_id

    def update_comment(self, issue_id: str, comment_id: str, doc: dict[str, Any]) -> None:
        self.tracker.update_comment(issue_id, comment_id, doc)
        logger.info("comment updated issue=%s comment=%s", issue_id, comment_id)

    def delete_comment(self, issue_id: str, comment_id: str) -> None:
        self.tracker.delete_comment(issue_id, comment_id)
        logger.info("comment deleted issue=%s comment=%s", issue_id, comment_id)

    def publish(
        self,
        task_id: str,
        issue_id: str,
        doc: dict[str, Any],
        previous_comment_id: str | None = None,
    ) -> str:
        """Put a task result on the issue and return the comment id.

        A known previous comment is edited in place. Otherwise a new comment is
        created and its id is registered with the processor, which hands it back
        as `previous_comment_id` on later completions of the same task.

        Creation is not idempotent: two concurrent deliveries of one completed
        task, both seeing no registered comment, each create a comment.
        """
        if previous_comment_id is not None:
            self.update_comment(issue_id, previous_comment_id, doc)
            return previous_comment_id

        comment_id = self.create_comment(issue_id, doc)
        self.processor.register_comment(task_id, comment_id)
        return comment_id
