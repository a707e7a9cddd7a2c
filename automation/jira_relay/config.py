"""Environment-driven settings for the Jira relay."""

from __future__ import annotations

import logging
import os
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]

SERVER_URL = os.getenv("SERVER_URL", "http://127.0.0.1:8000").rstrip("/")

JIRA_SERVER = os.getenv("JIRA_SERVER", "")
JIRA_EMAIL = os.getenv("JIRA_EMAIL", "")
JIRA_API_TOKEN = os.getenv("JIRA_API_TOKEN", "")

STATE_DIR = Path(os.getenv("STATE_DIR", ROOT / ".relay" / "state"))
QUEUE_FILE = STATE_DIR / "poll_queue.json"

LOG_DIR = Path(os.getenv("RELAY_LOG_DIR", STATE_DIR))
LOG_FILE = Path(os.getenv("RELAY_LOG_FILE", LOG_DIR / "jira-relay.log"))

HOST = os.getenv("RELAY_HOST", "127.0.0.1")
PORT = int(os.getenv("RELAY_PORT", "8788"))
HTTP_TIMEOUT_SEC = int(os.getenv("HTTP_TIMEOUT_SEC", "30"))

QUEUE_POLL_INTERVAL_SEC = float(os.getenv("QUEUE_POLL_INTERVAL_SEC", "5"))
QUEUE_LEASE_SEC = int(os.getenv("QUEUE_LEASE_SEC", "300"))
QUEUE_SHUTDOWN_TIMEOUT_SEC = float(os.getenv("QUEUE_SHUTDOWN_TIMEOUT_SEC", "30"))

MAX_ATTEMPTS = 10
INITIAL_POLL_DELAY_SEC = 60 * 10
RETRY_POLL_DELAY_SEC = 60

RERUN_COMMAND = "mayil-ai rerun"
RELEVANT_UPDATE_FIELDS = frozenset({"summary", "description", "attachment"})


def setup_logging() -> None:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(LOG_FILE, encoding="utf-8"),
        ],
    )
