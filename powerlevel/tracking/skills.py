"""
Skill invocation detector.

Watches assistant messages for workflow skill announcements ("I'm using the
executing-plans skill...") and moves the matching epic along: journey entry,
status label, dirty flag.
"""

import logging
import re
from dataclasses import dataclass

from powerlevel.lib.config import Config
from powerlevel.lib.labels import STATUS_IN_PROGRESS, STATUS_NAMESPACE, STATUS_REVIEW, replace_in_namespace
from powerlevel.lib.planparse import extract_plan_from_message
from powerlevel.tracking.journey import EVENT_SKILL_INVOCATION, add_journey_entry
from powerlevel.tracking.models import Cache, Epic, parse_timestamp

logger = logging.getLogger(__name__)


# How a phase finds its epic
TARGET_PLAN = "plan"       # Plan file path mentioned in the message
TARGET_ACTIVE = "active"   # Whatever epic is currently being finished


@dataclass(frozen=True)
class WorkflowPhase:
    skill: str
    pattern: re.Pattern
    target: str | None         # None: detected but no epic to update
    status: str | None         # Status label to switch to, if any
    message: str = ""          # Journey message


# Ordered, first match wins
PHASES = [
    WorkflowPhase(
        skill="executing-plans",
        pattern=re.compile(r'using the executing-plans skill', re.IGNORECASE),
        target=TARGET_PLAN,
        status=STATUS_IN_PROGRESS,
        message="Started executing implementation plan",
    ),
    WorkflowPhase(
        skill="finishing-a-development-branch",
        pattern=re.compile(r'using the finishing-a-development-branch skill', re.IGNORECASE),
        target=TARGET_ACTIVE,
        status=STATUS_REVIEW,
        message="Started finishing development branch",
    ),
    WorkflowPhase(
        skill="subagent-driven-development",
        pattern=re.compile(r'using the subagent-driven-development skill', re.IGNORECASE),
        target=TARGET_PLAN,
        status=None,
        message="Started subagent-driven development",
    ),
    # The plan being written has no epic yet; epic creation picks it up later
    WorkflowPhase(
        skill="writing-plans",
        pattern=re.compile(r'using the writing-plans skill', re.IGNORECASE),
        target=None,
        status=None,
    ),
]


def detect_skill_invocation(message: str) -> WorkflowPhase | None:
    """Return the first workflow phase announced in message, or None."""
    if not message or not isinstance(message, str):
        return None
    for phase in PHASES:
        if phase.pattern.search(message):
            return phase
    return None


def find_epic_by_plan_file(cache: Cache, plan_file: str) -> Epic | None:
    """Epic whose plan_file is, or ends with, the given path."""
    for epic in cache.epics:
        if epic.plan_file and (epic.plan_file == plan_file or plan_file in epic.plan_file):
            return epic
    return None


def _most_recent(epics: list[Epic]) -> Epic | None:
    if not epics:
        return None
    return max(epics, key=lambda e: parse_timestamp(e.updated_at))


def find_active_epic(cache: Cache) -> Epic | None:
    """Most recently updated open in-progress epic, else most recently updated open epic."""
    open_epics = [e for e in cache.epics if e.is_open]
    in_progress = [e for e in open_epics if STATUS_IN_PROGRESS in e.labels]
    return _most_recent(in_progress) or _most_recent(open_epics)


def resolve_target_epic(cache: Cache, phase: WorkflowPhase, message: str) -> Epic | None:
    if phase.target == TARGET_PLAN:
        plan_file = extract_plan_from_message(message)
        if not plan_file:
            return None
        return find_epic_by_plan_file(cache, plan_file)
    if phase.target == TARGET_ACTIVE:
        return find_active_epic(cache)
    return None


def handle_skill_invocation(
    cache: Cache,
    message: str,
    config: Config | None = None,
    agent: str | None = None,
) -> Epic | None:
    """
    Apply a skill announcement to the cache.

    Returns the epic that was updated, or None if the message announced no
    skill, the skill has no target epic, or skill tracking is disabled.
    """
    if config is not None:
        integration = config.integration
        if not (integration.enabled and integration.track_skill_usage
                and integration.update_epic_on_skill_invocation):
            return None

    phase = detect_skill_invocation(message)
    if phase is None:
        return None

    logger.debug(f"Detected skill: {phase.skill}")
    epic = resolve_target_epic(cache, phase, message)
    if epic is None:
        logger.debug(f"No epic linked to {phase.skill} invocation")
        return None

    add_journey_entry(cache, epic.number, {
        "event": EVENT_SKILL_INVOCATION,
        "message": phase.message,
        "agent": agent,
        "metadata": {"skill": phase.skill},
    })
    if phase.status:
        epic.labels = replace_in_namespace(epic.labels, STATUS_NAMESPACE, phase.status)
    cache.mark_dirty(epic.number)

    logger.info(f"Linked {phase.skill} to epic #{epic.number}")
    return epic
