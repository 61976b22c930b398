"""
Epic creation.

Plan epics come from a docs/plans/*.md file: one epic issue plus a
"Task N: ..." sub-issue per plan task. Tracking epics mirror the open
issues of an external repository. Both are written to GitHub first and
cached clean, since the remote body already matches.
"""

import logging
from pathlib import Path

from powerlevel.git.remote import RepoIdentity
from powerlevel.lib.errors import RemoteError, ValidationError
from powerlevel.lib.labels import PROJECT_NAMESPACE, STATUS_PLANNING
from powerlevel.lib.planparse import link_plan_to_epic, parse_plan
from powerlevel.tracking.models import Cache, Epic, MirrorItem
from powerlevel.tracking.render import format_plan_section, render_tracking_section

logger = logging.getLogger(__name__)

PROJECT_LABEL_COLOR = "0366d6"


def epic_labels(priority: str) -> list[str]:
    return ["type/epic", f"priority/{priority}", STATUS_PLANNING]


def task_labels(priority: str) -> list[str]:
    return ["type/task", f"task/{priority}", STATUS_PLANNING]


def issue_url(repo: str, number: int) -> str:
    return f"https://github.com/{repo}/issues/{number}"


def create_epic_from_plan(
    cache: Cache,
    plan_file: str,
    client,
    repo_path: Path | None = None,
    force: bool = False,
) -> Epic:
    """
    Create an epic issue and its task sub-issues from a plan file.

    A sub-issue that fails to create is logged and skipped; the epic and
    the remaining tasks are still cached. The plan file gets an
    "**Epic Issue:** #N" reference appended so it isn't created twice.

    Args:
        cache: Loaded cache, updated in place
        plan_file: Plan path as given, relative to repo_path unless absolute
        client: GitHubClient for the repository
        repo_path: Working copy the plan lives in
        force: Create even if the plan already references an epic

    Returns:
        The cached epic

    Raises:
        FileNotFoundError: plan file doesn't exist
        ValidationError: plan is already linked to an epic and force is off
        TransientRemoteError, FatalRemoteError: the epic issue itself
            couldn't be created; the cache is unchanged
    """
    plan_path = Path(plan_file)
    if repo_path is not None and not plan_path.is_absolute():
        plan_path = repo_path / plan_path

    plan = parse_plan(plan_path)
    if plan.epic_number is not None and not force:
        raise ValidationError(f"Plan already linked to epic #{plan.epic_number} (use --force to create another)")

    labels = epic_labels(plan.priority)
    number = client.create_issue(plan.title, format_plan_section(plan), labels=labels)
    logger.info(f"Created epic #{number}: {plan.title}")

    epic = cache.add_epic(Epic(
        number=number,
        title=plan.title,
        goal=plan.goal,
        plan_file=plan_file,
        labels=set(labels),
    ))

    total = len(plan.tasks)
    for index, task in enumerate(plan.tasks, 1):
        title = f"Task {index}: {task}"
        try:
            sub_number = client.create_issue(
                title,
                f"Part of #{number}\n\nTask {index} of {total}",
                labels=task_labels(plan.priority),
            )
        except RemoteError as e:
            logger.warning(f"Failed to create sub-issue for task {index} of epic #{number}: {e}")
            continue
        cache.add_sub_issue(number, MirrorItem(number=sub_number, title=title))
        logger.info(f"Created sub-issue #{sub_number}: {title}")

    # The body on GitHub was rendered from the same plan
    epic.dirty = False

    try:
        link_plan_to_epic(plan_path, number, issue_url(client.repo, number))
    except OSError as e:
        logger.warning(f"Could not add epic reference to {plan_path}: {e}")

    return epic


def project_name_for(repo: RepoIdentity) -> str:
    return repo.repo.lower().replace("_", "-")


def create_tracking_epic(
    cache: Cache,
    external_repo: str,
    client,
    description: str | None = None,
    priority: str = "p2",
    name: str | None = None,
) -> Epic:
    """
    Create a tracking epic mirroring an external repository's open issues.

    Raises:
        ValidationError: external_repo isn't owner/repo, or an open
            tracking epic for it already exists
        TransientRemoteError, FatalRemoteError: listing issues or creating
            the epic failed; the cache is unchanged
    """
    try:
        target = RepoIdentity.parse(external_repo)
    except ValueError as e:
        raise ValidationError(str(e)) from None

    for existing in cache.tracking_epics():
        if existing.external_repo == target.full_name:
            raise ValidationError(f"{target.full_name} is already tracked by epic #{existing.number}")

    items = client.list_open_issues(target.full_name)

    name = name or project_name_for(target)
    project_label = f"{PROJECT_NAMESPACE}{name}"
    try:
        client.create_label(project_label, PROJECT_LABEL_COLOR, description or f"External tracking: {name}")
    except RemoteError as e:
        logger.warning(f"Could not create label {project_label}: {e}")

    epic = Epic(
        number=0,
        title=f"Track: {target.repo}",
        labels={"type/epic", project_label, f"priority/{priority}"},
        tracked_items=[MirrorItem(number=i.number, title=i.title, url=i.url) for i in items],
        external_repo=target.full_name,
        description=description,
    )
    epic.number = client.create_issue(epic.title, render_tracking_section(epic), labels=sorted(epic.labels))
    cache.add_epic(epic)
    logger.info(f"Created tracking epic #{epic.number} for {target.full_name} ({len(items)} open issues)")
    return epic
