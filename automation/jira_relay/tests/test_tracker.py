from __future__ import annotations

import unittest
from types import SimpleNamespace

from automation.jira_relay.errors import CommentApiError, FetchError
from automation.jira_relay.tracker import JiraTracker
from automation.jira_relay.tests.fakes import FakeResponse, FakeSession

SERVER = "https://example.atlassian.net"
DOC = {"type": "doc", "version": 1, "content": []}


def _tracker(*responses: FakeResponse) -> tuple[JiraTracker, FakeSession]:
    session = FakeSession(*responses)
    return JiraTracker(SimpleNamespace(_session=session), SERVER + "/"), session


class JiraTrackerTests(unittest.TestCase):
    def test_fetch_issue_reads_v3_issue(self) -> None:
        tracker, session = _tracker(FakeResponse(200, {"key": "ABC-1", "fields": {}}))
        self.assertEqual(tracker.fetch_issue("ABC-1")["key"], "ABC-1")
        self.assertEqual(session.calls[0][:2], ("GET", f"{SERVER}/rest/api/3/issue/ABC-1"))

    def test_fetch_issue_failure_is_fetch_error(self) -> None:
        tracker, _ = _tracker(FakeResponse(404, {"errorMessages": ["nope"]}))
        with self.assertRaises(FetchError) as ctx:
            tracker.fetch_issue("ABC-404")
        self.assertEqual(ctx.exception.status, 404)

    def test_fetch_attachment_returns_bytes(self) -> None:
        tracker, session = _tracker(FakeResponse(200, content=b"\x89PNG"))
        self.assertEqual(tracker.fetch_attachment("77"), b"\x89PNG")
        self.assertEqual(session.calls[0][1], f"{SERVER}/rest/api/3/attachment/content/77")

    def test_create_comment_requires_201(self) -> None:
        tracker, session = _tracker(FakeResponse(201, {"id": "10001"}))
        self.assertEqual(tracker.create_comment("ABC-1", DOC), {"id": "10001"})
        method, url, kwargs = session.calls[0]
        self.assertEqual((method, url), ("POST", f"{SERVER}/rest/api/3/issue/ABC-1/comment"))
        self.assertEqual(kwargs["json"], {"body": DOC})

        tracker, _ = _tracker(FakeResponse(200, {"id": "10001"}))
        with self.assertRaises(CommentApiError) as ctx:
            tracker.create_comment("ABC-1", DOC)
        self.assertEqual(ctx.exception.status, 200)

    def test_update_comment_requires_200(self) -> None:
        tracker, session = _tracker(FakeResponse(200, {"id": "123"}))
        tracker.update_comment("ABC-1", "123", DOC)
        self.assertEqual(session.calls[0][:2], ("PUT", f"{SERVER}/rest/api/3/issue/ABC-1/comment/123"))

        tracker, _ = _tracker(FakeResponse(204))
        with self.assertRaises(CommentApiError):
            tracker.update_comment("ABC-1", "123", DOC)

    def test_delete_comment_requires_204(self) -> None:
        tracker, session = _tracker(FakeResponse(204))
        tracker.delete_comment("ABC-1", "555")
        self.assertEqual(session.calls[0][:2], ("DELETE", f"{SERVER}/rest/api/3/issue/ABC-1/comment/555"))

        tracker, _ = _tracker(FakeResponse(403, {"errorMessages": ["forbidden"]}))
        with self.assertRaises(CommentApiError) as ctx:
            tracker.delete_comment("ABC-1", "555")
        self.assertEqual(ctx.exception.status, 403)
        self.assertEqual(ctx.exception.operation, "delete")


if __name__ == "__main__":
    unittest.main()
