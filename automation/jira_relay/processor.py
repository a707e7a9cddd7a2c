"""Client for the external processing service (task submission and results)."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib import error, parse, request

from . import config
from .errors import FetchError, RemoteServiceError

logger = logging.getLogger("jira-relay.processor")


class ProcessorClient:
    def __init__(self, base_url: str | None = None, timeout: int | None = None):
        self.base_url = (base_url or config.SERVER_URL).rstrip("/")
        self.timeout = timeout or config.HTTP_TIMEOUT_SEC

    def _request_json(self, method: str, path: str, payload: Any = None) -> Any:
        url = f"{self.base_url}{path}"
        data = None
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
        req = request.Request(url, data=data, method=method)
        req.add_header("Accept", "application/json")
        if data is not None:
            req.add_header("Content-Type", "application/json")
        try:
            with request.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read().decode("utf-8")
        except error.HTTPError as exc:
            raise FetchError(f"{method} {path} failed with status {exc.code}", status=exc.code) from exc
        except (error.URLError, TimeoutError) as exc:
            raise FetchError(f"{method} {path} failed: {exc}") from exc
        if not raw.strip():
            return {}
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise FetchError(f"{method} {path} returned invalid JSON") from exc

    def get_results(self, task_id: str) -> dict[str, Any]:
        body = self._request_json("GET", f"/get-results/{parse.quote(task_id, safe='')}")
        if not isinstance(body, dict):
            raise FetchError(f"unexpected results payload for task {task_id}: {type(body).__name__}")
        return body

    def create_event(self, snapshot: dict[str, Any]) -> str:
        try:
            body = self._request_json("POST", "/jira/create_event", snapshot)
        except FetchError as exc:
            raise RemoteServiceError(f"processor rejected submission: {exc}", status=exc.status) from exc
        task_id = body.get("task_id") if isinstance(body, dict) else None
        if not task_id:
            raise RemoteServiceError("processor response has no task_id")
        return str(task_id)

    def register_comment(self, task_id: str, comment_id: str) -> None:
        self._request_json("POST", "/jira/post_comment", {"task_id": task_id, "comment_id": comment_id})
        logger.info("registered comment task=%s comment=%s", task_id, comment_id)
