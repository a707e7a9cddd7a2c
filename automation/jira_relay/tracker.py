"""Jira REST v3 access through the `jira` library's authenticated session."""

from __future__ import annotations

from typing import Any

from jira import JIRA, JIRAError

from . import config
from .errors import CommentApiError, FetchError

CREATED = 201
OK = 200
NO_CONTENT = 204


class JiraTracker:
    def __init__(self, client: JIRA, server: str):
        self.client = client
        self.server = server.rstrip("/")

    @classmethod
    def from_settings(cls) -> JiraTracker:
        server = config.JIRA_SERVER.rstrip("/")
        client = JIRA(
            basic_auth=(config.JIRA_EMAIL, config.JIRA_API_TOKEN),
            options={"server": server, "rest_api_version": "3"},
            get_server_info=False,
        )
        return cls(client, server)

    @property
    def _session(self):
        session = getattr(self.client, "_session", None)
        if session is None:
            raise RuntimeError("JIRA session unavailable")
        return session

    def _url(self, path: str) -> str:
        return f"{self.server}/rest/api/3{path}"

    def _get(self, path: str, **kwargs):
        try:
            resp = self._session.get(self._url(path), **kwargs)
        except JIRAError as exc:
            raise FetchError(f"GET {path} failed: {exc.text}", status=exc.status_code) from exc
        if resp.status_code >= 400:
            raise FetchError(f"GET {path} failed {resp.status_code}: {resp.text[:200]}", status=resp.status_code)
        return resp

    def fetch_issue(self, issue_key: str) -> dict[str, Any]:
        return self._get(f"/issue/{issue_key}").json()

    def fetch_attachment(self, attachment_id: str) -> bytes:
        return self._get(f"/attachment/content/{attachment_id}", headers={"Accept": "application/json"}).content

    def _comment_call(self, method: str, path: str, expected: int, operation: str, issue_id: str, **kwargs):
        try:
            resp = getattr(self._session, method)(self._url(path), **kwargs)
        except JIRAError as exc:
            raise CommentApiError(exc.status_code or 0, operation, issue_id) from exc
        if resp.status_code != expected:
            raise CommentApiError(resp.status_code, operation, issue_id)
        return resp

    def create_comment(self, issue_id: str, doc: dict[str, Any]) -> dict[str, Any]:
        resp = self._comment_call(
            "post", f"/issue/{issue_id}/comment", CREATED, "add", issue_id, json={"body": doc}
        )
        return resp.json()

    def update_comment(self, issue_id: str, comment_id: str, doc: dict[str, Any]) -> dict[str, Any]:
        resp = self._comment_call(
            "put", f"/issue/{issue_id}/comment/{comment_id}", OK, "update", issue_id, json={"body": doc}
        )
        return resp.json()

    def delete_comment(self, issue_id: str, comment_id: str) -> None:
        self._comment_call("delete", f"/issue/{issue_id}/comment/{comment_id}", NO_CONTENT, "delete", issue_id)
