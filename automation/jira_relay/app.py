"""Jira webhook receiver and poll-queue worker.

Routes:
- POST /jira/webhook: classify a Jira issue event and submit / rerun / ignore
- GET /healthz: liveness plus number of queued poll messages
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass

import uvicorn
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from . import config
from .comments import CommentReconciler
from .dispatch import EventDispatcher, RerunHandler
from .errors import MalformedEventError, RelayError
from .poller import StatusPoller
from .processor import ProcessorClient
from .scheduler import DelayedQueue, QueueWorker
from .submitter import TaskSubmitter
from .tracker import JiraTracker

logger = logging.getLogger("jira-relay")


@dataclass(slots=True)
class Relay:
    queue: DelayedQueue
    dispatcher: EventDispatcher
    poller: StatusPoller

    @classmethod
    def build(cls, tracker: JiraTracker, processor: ProcessorClient, queue: DelayedQueue) -> Relay:
        reconciler = CommentReconciler(tracker, processor)
        submitter = TaskSubmitter(tracker, processor, queue)
        return cls(
            queue=queue,
            dispatcher=EventDispatcher(submitter, RerunHandler(reconciler, submitter)),
            poller=StatusPoller(processor, reconciler, queue),
        )

    @classmethod
    def from_settings(cls) -> Relay:
        return cls.build(JiraTracker.from_settings(), ProcessorClient(), DelayedQueue())


def create_app(relay: Relay | None = None, *, run_worker: bool = True) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.relay is None:
            app.state.relay = Relay.from_settings()
        worker = None
        if run_worker:
            worker = QueueWorker(app.state.relay.queue, app.state.relay.poller.on_poll)
            worker.start()
        app.state.worker = worker
        try:
            yield
        finally:
            if worker is not None:
                worker.stop()
                # Let an in-flight poll finish and ack.
                await run_in_threadpool(worker.join, config.QUEUE_SHUTDOWN_TIMEOUT_SEC)
                if worker.is_alive():
                    logger.warning(
                        "queue worker still busy after %ss; leased message will be redelivered",
                        config.QUEUE_SHUTDOWN_TIMEOUT_SEC,
                    )

    app = FastAPI(title="jira-relay", lifespan=lifespan)
    app.state.relay = relay

    @app.get("/healthz")
    def healthz(request: Request) -> dict:
        return {"ok": True, "queued": len(request.app.state.relay.queue.pending())}

    @app.post("/jira/webhook")
    async def webhook(request: Request) -> JSONResponse:
        try:
            payload = json.loads(await request.body())
        except ValueError:
            return JSONResponse({"ok": False, "error": "invalid json"}, status_code=400)

        try:
            result = await run_in_threadpool(request.app.state.relay.dispatcher.handle, payload)
        except MalformedEventError as exc:
            logger.warning("malformed event: %s", exc)
            return JSONResponse({"ok": False, "error": str(exc)}, status_code=400)
        except RelayError as exc:
            logger.exception("event handling failed")
            return JSONResponse({"ok": False, "error": str(exc)}, status_code=502)
        return JSONResponse(result.to_dict())

    return app


def main() -> None:
    config.setup_logging()
    logger.info("Jira relay listening on http://%s:%s/jira/webhook", config.HOST, config.PORT)
    logger.info("Processor: %s", config.SERVER_URL)
    logger.info("Queue file: %s", config.QUEUE_FILE)
    logger.info("Log file: %s", config.LOG_FILE)
    if not config.JIRA_SERVER:
        logger.warning("JIRA_SERVER is empty; Jira calls will fail.")
    uvicorn.run(create_app(), host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
