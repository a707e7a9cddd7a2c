"""Error kinds raised by the relay. All of them abort the current invocation."""

from __future__ import annotations


class RelayError(Exception):
    pass


class FetchError(RelayError):
    """Network failure or non-2xx response from the processor or Jira."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class RemoteServiceError(FetchError):
    """The processor rejected a submission or answered with an unusable body."""


class CommentApiError(RelayError):
    def __init__(self, status: int, operation: str, issue_id: str):
        super().__init__(f"Unable to {operation} comment on issue_id {issue_id} Status: {status}.")
        self.status = status
        self.operation = operation
        self.issue_id = issue_id


class MalformedEventError(RelayError):
    """Webhook payload does not have the shape of a Jira issue event."""
