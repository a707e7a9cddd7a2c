from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from automation.jira_relay.app import Relay, create_app
from automation.jira_relay.errors import FetchError
from automation.jira_relay.models import Task
from automation.jira_relay.scheduler import DelayedQueue, QueueWorker
from automation.jira_relay.tests.fakes import (
    FakeClock,
    FakeProcessor,
    FakeTracker,
    comment_event,
    issue_payload,
)


class FailingTracker(FakeTracker):
    def fetch_issue(self, issue_key):
        raise FetchError(f"GET /issue/{issue_key} failed 404", status=404)


@pytest.fixture
def relay_env(tmp_path):
    clock = FakeClock()
    tracker = FakeTracker({"ABC-1": issue_payload("ABC-1")})
    processor = FakeProcessor(task_id="t1")
    queue = DelayedQueue(tmp_path / "poll_queue.json", lease_seconds=300, clock=clock)
    relay = Relay.build(tracker, processor, queue)
    client = TestClient(create_app(relay, run_worker=False))
    return client, relay, tracker, processor, clock


def test_healthz_reports_queue_depth(relay_env) -> None:
    client, relay, *_ = relay_env
    relay.queue.enqueue(Task("t0", "ABC-0", 0), 600)

    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"ok": True, "queued": 1}


def test_created_issue_to_comment_end_to_end(relay_env) -> None:
    client, relay, tracker, processor, clock = relay_env

    response = client.post("/jira/webhook", json={"eventType": "avi:jira:created:issue", "issue": {"key": "ABC-1"}})
    assert response.status_code == 200
    assert response.json() == {"ok": True, "action": "submitted", "issue_key": "ABC-1", "task_id": "t1"}
    assert processor.submitted[0]["key"] == "ABC-1"

    (first,) = relay.queue.pending()
    assert first.task == Task("t1", "ABC-1", 0)
    assert first.not_before == clock.now + 600

    worker = QueueWorker(relay.queue, relay.poller.on_poll, interval=0)
    clock.advance(599)
    assert worker.run_once() == 0

    processor.results.append({"status": "pending"})
    clock.advance(1)
    assert worker.run_once() == 1
    (second,) = relay.queue.pending()
    assert second.task == Task("t1", "ABC-1", 1)
    assert second.not_before == clock.now + 60

    processor.results.append({"status": "completed", "result": "**done**"})
    clock.advance(60)
    assert worker.run_once() == 1

    assert relay.queue.pending() == []
    assert len(tracker.created) == 1
    issue_id, doc = tracker.created[0]
    assert issue_id == "ABC-1"
    assert doc["content"][0]["content"] == [{"type": "text", "text": "done", "marks": [{"type": "strong"}]}]
    assert processor.registered == [("t1", "10001")]


def test_rerun_comment_deletes_trigger_and_resubmits(relay_env) -> None:
    client, relay, tracker, processor, _ = relay_env

    response = client.post("/jira/webhook", json=comment_event("@Mayil-AI Rerun", comment_id="555"))

    assert response.json()["action"] == "rerun"
    assert tracker.deleted == [("ABC-1", "555")]
    assert len(processor.submitted) == 1
    assert [m.task for m in relay.queue.pending()] == [Task("t1", "ABC-1", 0)]


def test_irrelevant_update_is_ignored(relay_env) -> None:
    client, relay, _, processor, _ = relay_env
    payload = {
        "eventType": "avi:jira:updated:issue",
        "issue": {"key": "ABC-1"},
        "changelog": {"items": [{"field": "priority"}]},
    }

    response = client.post("/jira/webhook", json=payload)

    assert response.status_code == 200
    assert response.json() == {
        "ok": True,
        "action": "ignored",
        "issue_key": "ABC-1",
        "reason": "no relevant fields updated",
    }
    assert processor.submitted == []
    assert relay.queue.pending() == []


def test_unsupported_event_reports_not_ok(relay_env) -> None:
    client, *_ = relay_env
    response = client.post("/jira/webhook", json={"eventType": "avi:jira:deleted:issue", "issue": {"key": "ABC-1"}})
    assert response.status_code == 200
    assert response.json()["ok"] is False


def test_malformed_event_is_bad_request(relay_env) -> None:
    client, *_ = relay_env
    assert client.post("/jira/webhook", json={"eventType": "avi:jira:created:issue"}).status_code == 400
    assert client.post("/jira/webhook", content=b"{not json").status_code == 400
    assert client.post("/jira/webhook", content=b'{"eventType": "\xff\xfe"}').status_code == 400


def test_downstream_failure_is_bad_gateway(relay_env) -> None:
    client, relay, *_ = relay_env

    relay.dispatcher.submitter.tracker = FailingTracker()
    response = client.post("/jira/webhook", json={"eventType": "avi:jira:created:issue", "issue": {"key": "ABC-404"}})

    assert response.status_code == 502
    assert response.json()["ok"] is False
    assert relay.queue.pending() == []


def test_shutdown_stops_and_joins_queue_worker(relay_env) -> None:
    _, relay, *_ = relay_env
    app = create_app(relay, run_worker=True)

    with TestClient(app) as client:
        worker = app.state.worker
        assert worker.is_alive()
        assert client.get("/healthz").status_code == 200

    assert not worker.is_alive()
