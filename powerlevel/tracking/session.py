"""
Session-end checkpoint ("land the plane").

Scans commits made since the last check for task completions, then pushes
every dirty epic. Runs as one locked load-mutate-save cycle.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path

from powerlevel.lib.config import Config
from powerlevel.tracking.cache import CacheStore
from powerlevel.tracking.commits import apply_completed_tasks, find_completed_tasks
from powerlevel.tracking.models import Cache
from powerlevel.tracking.sync import BatchSyncResult, sync_dirty_epics

logger = logging.getLogger(__name__)

# First scan looks this far back
DEFAULT_LOOKBACK = timedelta(hours=1)


@dataclass
class CheckpointResult:
    completed_epics: list[int] = field(default_factory=list)
    sync: BatchSyncResult = field(default_factory=BatchSyncResult)


def check_for_completed_tasks(
    cache: Cache,
    repo_path: Path,
    client=None,
    config: Config | None = None,
    now: datetime | None = None,
) -> list[int]:
    """Apply commit-message completions since cache.last_task_check.

    Advances last_task_check to the scan's start time. Returns the epics
    that were updated.
    """
    if config is not None and not config.tracking.update_on_task_complete:
        return []

    now = now or datetime.now(timezone.utc)
    since = cache.last_task_check or (now - DEFAULT_LOOKBACK).isoformat()
    logger.info(f"Checking for completed tasks since {since}")

    completed = find_completed_tasks(since, repo_path)
    updated = apply_completed_tasks(cache, completed, client=client, config=config) if completed else []
    if not completed:
        logger.info("No completed tasks found")

    cache.last_task_check = now.isoformat()
    return updated


def land_the_plane(
    repo_path: Path,
    identity: str,
    client,
    config: Config,
    store: CacheStore,
) -> CheckpointResult:
    """Run the session-end checkpoint for one repository."""
    with store.lock(identity):
        cache = store.load(identity)
        result = CheckpointResult()
        result.completed_epics = check_for_completed_tasks(cache, repo_path, client, config)
        result.sync = sync_dirty_epics(cache, client, config, repo_path)
        store.save(identity, cache)
    return result
