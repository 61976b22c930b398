"""
Markdown rendering of epic issue bodies.

Plan epics render Goal + Tasks from their plan file, tracking epics render
the external project's tasklist. Both end with the Progress Journey.
"""

import logging
import re
from datetime import timezone
from pathlib import Path

from powerlevel.lib.planparse import Plan, parse_plan
from powerlevel.tracking.journey import journey_newest_first
from powerlevel.tracking.models import Epic, MirrorItem, STATE_CLOSED, parse_timestamp

logger = logging.getLogger(__name__)

__all__ = [
    "render_epic_body",
    "render_plan_section",
    "format_plan_section",
    "render_journey_section",
    "render_tracking_section",
    "format_tasklist",
]


def _format_timestamp(value: str) -> str:
    parsed = parse_timestamp(value).astimezone(timezone.utc)
    return parsed.strftime("%Y-%m-%d %H:%M")


def _task_is_complete(epic: Epic, task_number: int) -> bool:
    """A plan task is done when its mirrored "Task N" sub-issue is closed."""
    pattern = re.compile(rf'\bTask {task_number}\b')
    for item in epic.sub_issues:
        if item.title and pattern.search(item.title):
            return item.state == STATE_CLOSED
    return False


def format_plan_section(plan: Plan, is_complete=None) -> str:
    """Goal and task checklist for a parsed plan.

    is_complete(task_number) decides each checkbox; all unchecked if omitted.
    """
    body = f"## Goal\n\n{plan.goal}\n\n"
    if plan.tasks:
        body += "## Tasks\n\n"
        for index, task in enumerate(plan.tasks, 1):
            checkbox = "[x]" if is_complete and is_complete(index) else "[ ]"
            body += f"- {checkbox} {task}\n"
        body += "\n"
    return body


def render_plan_section(epic: Epic, repo_path: Path | None = None) -> str:
    """Goal and task checklist from the epic's plan file, or just the title."""
    fallback = f"## Goal\n\n{epic.title}\n\n"
    if not epic.plan_file:
        return fallback

    plan_path = Path(epic.plan_file)
    if repo_path is not None and not plan_path.is_absolute():
        plan_path = repo_path / plan_path

    try:
        plan = parse_plan(plan_path)
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"Plan for epic #{epic.number} unavailable ({e}), rendering title only")
        return fallback

    return format_plan_section(plan, lambda number: _task_is_complete(epic, number))


def format_tasklist(items: list[MirrorItem]) -> str:
    """Markdown tasklist of open tracked items."""
    open_items = [i for i in items if i.is_open]
    if not open_items:
        return "- [ ] No open issues in external repository\n"

    lines = []
    for item in open_items:
        label = f"[{item.title}]({item.url})" if item.url else f"#{item.number} {item.title}"
        lines.append(f"- [ ] {label}")
    return "\n".join(lines) + "\n"


def render_tracking_section(epic: Epic) -> str:
    """Body section of an external project tracking epic."""
    repo = epic.external_repo
    closed_count = sum(1 for i in epic.tracked_items if not i.is_open)
    body = "**External Project Tracking Epic**\n\n"
    body += f"This epic tracks open issues from the external repository: [{repo}](https://github.com/{repo})\n\n"
    if epic.description:
        body += f"**Description:** {epic.description}\n\n"
    body += "**Tracked Issues:**\n\n"
    body += format_tasklist(epic.tracked_items)
    body += "\n**Tracking Status:**\n"
    body += f"- External repo: https://github.com/{repo}\n"
    body += f"- Open: {len(epic.tracked_items) - closed_count}, closed since tracking began: {closed_count}\n"
    body += "- Tracking-only epic: work happens in the external repository\n\n"
    return body


def render_journey_section(epic: Epic) -> str:
    """Progress Journey, newest entry first. Empty string if there are none."""
    if not epic.journey:
        return ""

    body = "## Progress Journey\n\n"
    for entry in journey_newest_first(epic):
        body += f"- **{_format_timestamp(entry.timestamp)} UTC** - {entry.message}"
        if entry.agent:
            body += f"\n  - Agent: {entry.agent}"
        body += "\n"
    return body


def render_epic_body(epic: Epic, repo_path: Path | None = None) -> str:
    """Full issue body for an epic."""
    if epic.is_tracking_epic:
        body = render_tracking_section(epic)
    else:
        body = render_plan_section(epic, repo_path)
    return body + render_journey_section(epic)
