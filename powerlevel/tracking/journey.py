"""
Journey log: append-only progress entries on an epic.

Entries are stored oldest first (insertion order). Rendering sorts them
newest first; storage order is never changed here.
"""

import logging
import re
from typing import Any

from powerlevel.lib.config import Config
from powerlevel.lib.errors import RemoteError, ValidationError
from powerlevel.tracking.models import Cache, Epic, JourneyEntry, now_iso, parse_timestamp

logger = logging.getLogger(__name__)

__all__ = [
    "sanitize",
    "validate_epic_number",
    "add_journey_entry",
    "journey_newest_first",
    "record_task_completion",
    "EVENT_TASK_COMPLETE",
    "EVENT_SKILL_INVOCATION",
]

EVENT_TASK_COMPLETE = "task_complete"
EVENT_SKILL_INVOCATION = "skill_invocation"

# Control characters except tab (\x09), newline (\x0a) and carriage return (\x0d)
CONTROL_CHARS_RE = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f]')


def sanitize(value: Any) -> str:
    """Strip control characters. Non-strings become ""."""
    if not isinstance(value, str):
        return ""
    return CONTROL_CHARS_RE.sub("", value)


def validate_epic_number(epic_number: Any) -> int:
    """Raise ValidationError unless epic_number is a positive int."""
    if isinstance(epic_number, bool) or not isinstance(epic_number, int) or epic_number <= 0:
        raise ValidationError("Epic number must be a positive integer")
    return epic_number


def add_journey_entry(cache: Cache, epic_number: int, entry: dict | JourneyEntry) -> JourneyEntry:
    """
    Append a sanitized journey entry to an epic.

    Does not mark the epic dirty; callers decide.

    Args:
        cache: Loaded cache
        epic_number: Epic issue number
        entry: JourneyEntry or dict with event, message, and optional
               timestamp, agent, metadata

    Returns:
        The entry as stored

    Raises:
        ValidationError: bad epic number, or missing/empty event or message
        NotFoundError: epic is not in the cache (checked before the entry)
    """
    validate_epic_number(epic_number)
    epic = cache.require_epic(epic_number)

    if isinstance(entry, JourneyEntry):
        entry = entry.to_dict()
    if not isinstance(entry, dict):
        raise ValidationError("Entry must be a mapping")

    event = entry.get("event")
    message = entry.get("message")
    if not isinstance(event, str) or not event:
        raise ValidationError("Entry must have an event field (non-empty string)")
    if not isinstance(message, str) or not message:
        raise ValidationError("Entry must have a message field (non-empty string)")

    stored = JourneyEntry(
        timestamp=entry.get("timestamp") or now_iso(),
        event=sanitize(event),
        message=sanitize(message),
        agent=sanitize(entry.get("agent")) or None,
        metadata=entry.get("metadata") or None,
    )
    if not stored.event or not stored.message:
        raise ValidationError("Entry event and message must contain printable text")

    epic.journey.append(stored)
    return stored


def journey_newest_first(epic: Epic) -> list[JourneyEntry]:
    """Journey entries sorted for display, newest first."""
    return sorted(epic.journey, key=lambda e: parse_timestamp(e.timestamp), reverse=True)


def _format_progress_comment(message: str, agent: str | None) -> str:
    parts = [f"**Task completed**\n\n{message}"]
    if agent:
        parts.append(f"_Completed by: {agent}_")
    parts.append("_Updated automatically by Powerlevel_")
    return "\n\n".join(parts)


def record_task_completion(
    cache: Cache,
    epic_number: int,
    task_number: int,
    task_title: str,
    agent: str | None = None,
    client=None,
    config: Config | None = None,
) -> JourneyEntry:
    """
    Record a completed task on an epic and mark it dirty.

    If progress comments are enabled and a client is given, also comments on
    the epic issue. A failed comment is logged and otherwise ignored; the
    journey entry still reaches GitHub on the next sync.
    """
    validate_epic_number(epic_number)
    if isinstance(task_number, bool) or not isinstance(task_number, int) or task_number <= 0:
        raise ValidationError("Task number must be a positive integer")
    if not isinstance(task_title, str) or not task_title.strip():
        raise ValidationError("Task title must be a non-empty string")

    message = f"Task {task_number} completed: {sanitize(task_title)}"
    stored = add_journey_entry(cache, epic_number, {
        "event": EVENT_TASK_COMPLETE,
        "message": message,
        "agent": agent,
        "metadata": {"task_number": task_number, "task_title": sanitize(task_title)},
    })
    cache.mark_dirty(epic_number)

    if client is not None and config is not None and config.tracking.comment_on_progress:
        try:
            client.add_comment(epic_number, _format_progress_comment(stored.message, stored.agent))
            logger.info(f"Added completion comment to epic #{epic_number}")
        except RemoteError as e:
            logger.warning(f"Could not add comment to epic #{epic_number}: {e}")

    return stored
