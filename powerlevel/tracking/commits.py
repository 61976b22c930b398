"""
Commit-message task completion detector.

Finds "closes #N" style references in commit subjects and records the
referenced task as complete on its epic.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from powerlevel.git.log import Commit, get_commits_since
from powerlevel.lib.config import Config
from powerlevel.lib.errors import ValidationError
from powerlevel.tracking.journey import record_task_completion
from powerlevel.tracking.models import Cache, STATE_CLOSED, now_iso

logger = logging.getLogger(__name__)

CLOSING_RE = re.compile(r'\b(closes|fixes|resolves|completes)\s+#(\d+)', re.IGNORECASE)
TASK_TITLE_RE = re.compile(r'Task\s+(\d+):\s*', re.IGNORECASE)

COMMIT_AGENT_PREFIX = "git-commit-"


@dataclass(frozen=True)
class TaskReference:
    issue_number: int
    keyword: str  # Lower-cased closing keyword


@dataclass(frozen=True)
class CompletedTask:
    issue_number: int
    keyword: str
    commit: Commit


def detect_task_from_commit(message: str) -> TaskReference | None:
    """Return the first closing reference in a commit message, or None."""
    if not message or not isinstance(message, str):
        return None
    match = CLOSING_RE.search(message)
    if not match:
        return None
    return TaskReference(issue_number=int(match.group(2)), keyword=match.group(1).lower())


def find_completed_tasks(since: str, repo_path: Path) -> list[CompletedTask]:
    """Closing references in commits since a timestamp, oldest commit first.

    Returns [] when git history can't be read.
    """
    completed = []
    for commit in get_commits_since(repo_path, since):
        ref = detect_task_from_commit(commit.message)
        if ref:
            completed.append(CompletedTask(issue_number=ref.issue_number, keyword=ref.keyword, commit=commit))
    return completed


def apply_completed_tasks(
    cache: Cache,
    completed: list[CompletedTask],
    client=None,
    config: Config | None = None,
) -> list[int]:
    """
    Record each completed task on its epic.

    The referenced issue must be a cached task issue titled "Task N: ...".
    Its sub-issue mirror is marked closed together with the journey entry
    and dirty flag. References that can't be mapped are logged and skipped.

    Returns:
        Numbers of the epics that were updated
    """
    updated = []
    for task in completed:
        issue_number = task.issue_number
        short = task.commit.short_hash

        issue = cache.get_issue(issue_number)
        if issue is None:
            logger.warning(f"Issue #{issue_number} ({short}) not found in cache, may not be an epic task")
            continue
        if issue.state == STATE_CLOSED:
            logger.info(f"Issue #{issue_number} already closed, skipping ({short})")
            continue

        epic = cache.find_epic_for_issue(issue_number)
        if epic is None:
            logger.warning(f"Could not find epic for issue #{issue_number}")
            continue

        title_match = TASK_TITLE_RE.search(issue.title or "")
        if not title_match:
            logger.warning(f"Could not extract task number from issue title: {issue.title}")
            continue

        task_number = int(title_match.group(1))
        task_title = TASK_TITLE_RE.sub("", issue.title, count=1).strip() or issue.title

        try:
            record_task_completion(
                cache,
                epic.number,
                task_number,
                task_title,
                agent=f"{COMMIT_AGENT_PREFIX}{short}",
                client=client,
                config=config,
            )
        except ValidationError as e:
            logger.warning(f"Failed to record completion of issue #{issue_number}: {e}")
            continue

        sub_issue = epic.find_sub_issue(issue_number)
        if sub_issue is not None and sub_issue.is_open:
            sub_issue.state = STATE_CLOSED
            sub_issue.closed_at = task.commit.timestamp or now_iso()
        issue.state = STATE_CLOSED

        logger.info(f"Recorded task {task_number} completion for epic #{epic.number} ({task.keyword} in {short})")
        if epic.number not in updated:
            updated.append(epic.number)

    return updated
