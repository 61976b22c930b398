"""
Plan file parser for Powerlevel.

Extracts title, goal, task list and priority from a markdown implementation
plan (docs/plans/*.md).
"""

import re
from dataclasses import dataclass, field
from pathlib import Path

TITLE_RE = re.compile(r'^#\s+(.+?)\s*$')
PRIORITY_RE = re.compile(r'^priority:\s*(p[0-3])', re.IGNORECASE)
GOAL_HEADING_RE = re.compile(r'^###?\s+goal', re.IGNORECASE)
TASKS_HEADING_RE = re.compile(r'^###?\s+(tasks|steps|checklist)', re.IGNORECASE)
TASK_ITEM_RE = re.compile(r'^[-*]\s+(?:\[[ xX]\]\s+)?(.+)')
PLAN_REF_RE = re.compile(r'docs/plans/[\w.-]+\.md')
EPIC_REF_RE = re.compile(r'\*\*Epic Issue:\*\*\s+#(\d+)')

EPIC_REF_TEMPLATE = "\n\n---\n\n**Epic Issue:** #{number} ({url})\n"

DEFAULT_PRIORITY = "p2"


@dataclass
class Plan:
    title: str
    goal: str
    tasks: list[str] = field(default_factory=list)
    priority: str = DEFAULT_PRIORITY
    epic_number: int | None = None  # From an "**Epic Issue:** #N" line


def parse_plan(filepath: str | Path) -> Plan:
    """Parse a plan file.

    Raises:
        FileNotFoundError: if the file doesn't exist
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Plan file not found: {filepath}")

    content = path.read_text()
    title = ""
    goal_lines = []
    tasks = []
    priority = DEFAULT_PRIORITY
    section = None

    for raw in content.splitlines():
        line = raw.strip()

        if not title:
            title_match = TITLE_RE.match(line)
            if title_match:
                title = title_match.group(1)
                continue

        priority_match = PRIORITY_RE.match(line)
        if priority_match:
            priority = priority_match.group(1).lower()
            continue

        if GOAL_HEADING_RE.match(line):
            section = "goal"
            continue
        if TASKS_HEADING_RE.match(line):
            section = "tasks"
            continue
        # Horizontal rules close a section too; the epic reference follows one
        if line.startswith("##") or line == "---":
            section = None
            continue

        if section == "goal" and line:
            goal_lines.append(line)
        elif section == "tasks":
            task_match = TASK_ITEM_RE.match(line)
            if task_match:
                tasks.append(task_match.group(1).strip())

    epic_match = EPIC_REF_RE.search(content)

    return Plan(
        title=title or "Untitled Plan",
        goal="\n".join(goal_lines) or "No goal specified",
        tasks=tasks,
        priority=priority,
        epic_number=int(epic_match.group(1)) if epic_match else None,
    )


def extract_plan_from_message(message: str) -> str | None:
    """Return the first docs/plans/<name>.md path mentioned in a message."""
    if not message:
        return None
    match = PLAN_REF_RE.search(message)
    return match.group(0) if match else None


def link_plan_to_epic(filepath: str | Path, number: int, url: str) -> None:
    """Append the "**Epic Issue:** #N" reference that parse_plan reads back."""
    with open(filepath, "a") as f:
        f.write(EPIC_REF_TEMPLATE.format(number=number, url=url))
