"""Jira webhook decoding and intent classification.

Payloads are decoded once into a closed set of event variants; classification
is a pure function of the decoded event.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from .config import RELEVANT_UPDATE_FIELDS, RERUN_COMMAND
from .errors import MalformedEventError

CREATED_EVENT_TYPES = {"avi:jira:created:issue", "jira:issue_created"}
UPDATED_EVENT_TYPES = {"avi:jira:updated:issue", "jira:issue_updated"}
COMMENTED_EVENT_TYPES = {"avi:jira:commented:issue", "comment_created"}


@dataclass(frozen=True, slots=True)
class CreatedEvent:
    event_type: str
    issue_key: str


@dataclass(frozen=True, slots=True)
class UpdatedEvent:
    event_type: str
    issue_key: str
    changed_fields: frozenset[str]


@dataclass(frozen=True, slots=True)
class CommentedEvent:
    event_type: str
    issue_key: str
    comment_id: str
    body: tuple[Any, ...]


@dataclass(frozen=True, slots=True)
class OtherEvent:
    event_type: str
    issue_key: str


Event = CreatedEvent | UpdatedEvent | CommentedEvent | OtherEvent


@dataclass(frozen=True, slots=True)
class StartProcessing:
    issue_key: str


@dataclass(frozen=True, slots=True)
class Rerun:
    issue_key: str
    comment_id: str


@dataclass(frozen=True, slots=True)
class Ignore:
    reason: str
    supported: bool = True


Intent = StartProcessing | Rerun | Ignore


def _event_type(payload: dict[str, Any]) -> str:
    value = payload.get("eventType") or payload.get("webhookEvent") or ""
    return str(value)


def decode_event(payload: Any) -> Event:
    if not isinstance(payload, dict):
        raise MalformedEventError(f"event payload must be an object, got {type(payload).__name__}")

    event_type = _event_type(payload)
    issue = payload.get("issue")
    issue_key = issue.get("key") if isinstance(issue, dict) else None
    if not issue_key:
        raise MalformedEventError(f"event {event_type or '<unknown>'} has no issue.key")
    issue_key = str(issue_key)

    if event_type in CREATED_EVENT_TYPES:
        return CreatedEvent(event_type, issue_key)

    if event_type in UPDATED_EVENT_TYPES:
        changelog = payload.get("changelog") or {}
        items = changelog.get("items", []) if isinstance(changelog, dict) else []
        fields = frozenset(
            str(item["field"]) for item in items if isinstance(item, dict) and item.get("field")
        )
        return UpdatedEvent(event_type, issue_key, fields)

    if event_type in COMMENTED_EVENT_TYPES:
        comment = payload.get("comment")
        if not isinstance(comment, dict) or comment.get("id") is None:
            raise MalformedEventError(f"commented event for {issue_key} has no comment.id")
        body = comment.get("body")
        content = body.get("content") if isinstance(body, dict) else None
        if not isinstance(content, list):
            raise MalformedEventError(f"comment {comment['id']} on {issue_key} has no body.content")
        return CommentedEvent(event_type, issue_key, str(comment["id"]), tuple(content))

    return OtherEvent(event_type, issue_key)


def comment_text(paragraphs: Iterable[Any]) -> str:
    """Concatenate the text of every text node under the comment's paragraphs."""
    parts: list[str] = []
    for paragraph in paragraphs:
        if not isinstance(paragraph, dict):
            continue
        for node in paragraph.get("content") or []:
            if isinstance(node, dict) and "text" in node:
                parts.append(str(node["text"]))
    return "".join(parts)


def normalize_comment(text: str) -> str:
    return text.replace("@", "").replace("`", "").lower().strip()


def is_rerun_command(text: str) -> bool:
    return normalize_comment(text).startswith(RERUN_COMMAND)


def _is_relevant_update(changed_fields: Iterable[str]) -> bool:
    return any(field.lower() in RELEVANT_UPDATE_FIELDS for field in changed_fields)


def classify(event: Event) -> Intent:
    if isinstance(event, CreatedEvent):
        return StartProcessing(event.issue_key)
    if isinstance(event, UpdatedEvent):
        if _is_relevant_update(event.changed_fields):
            return StartProcessing(event.issue_key)
        return Ignore("no relevant fields updated")
    if isinstance(event, CommentedEvent):
        if is_rerun_command(comment_text(event.body)):
            return Rerun(event.issue_key, event.comment_id)
        return Ignore("not a rerun comment")
    return Ignore(f"unsupported event type {event.event_type or '<none>'}", supported=False)
