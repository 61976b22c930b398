"""
Dirty-flag sync engine.

Pushes epics with unpushed local changes to GitHub. The dirty flag is
cleared only after GitHub confirms the write:

- success: flag cleared, updated_at refreshed, cache persisted
- transient failure (rate limit, timeout, network): flag kept, warning logged,
  nothing raised
- fatal failure (not found, auth): flag kept, error raised to the caller

Batch sync visits each dirty epic once and never lets one epic's failure
stop the others.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from powerlevel.lib.config import Config
from powerlevel.lib.errors import FatalRemoteError, NotFoundError, TransientRemoteError
from powerlevel.lib.labels import STATUS_LABELS, STATUS_NAMESPACE, labels_in_namespace
from powerlevel.tracking.cache import CacheStore
from powerlevel.tracking.fsm import EpicSyncFSM
from powerlevel.tracking.journey import validate_epic_number
from powerlevel.tracking.models import Cache, Epic, now_iso
from powerlevel.tracking.render import render_epic_body

logger = logging.getLogger(__name__)


class SyncOutcome(Enum):
    SYNCED = "synced"
    SKIPPED_CLEAN = "skipped_clean"    # Nothing to push
    DISABLED = "disabled"              # tracking.autoUpdateEpics is off
    DEFERRED = "deferred"              # Transient failure, still dirty


@dataclass
class BatchSyncResult:
    """Aggregate outcome of one sync pass."""
    synced: list[int] = field(default_factory=list)
    deferred: list[int] = field(default_factory=list)
    failed: list[tuple[int, str]] = field(default_factory=list)  # (epic number, error)
    disabled: bool = False

    @property
    def success_count(self) -> int:
        return len(self.synced)

    @property
    def failure_count(self) -> int:
        return len(self.deferred) + len(self.failed)

    @property
    def ok(self) -> bool:
        """True if nothing needs attention (deferred epics retry on their own)."""
        return not self.failed


def status_label_changes(epic: Epic) -> tuple[list[str], list[str]]:
    """Labels to add and remove so GitHub carries exactly the epic's status labels."""
    add = sorted(labels_in_namespace(epic.labels, STATUS_NAMESPACE))
    remove = sorted(STATUS_LABELS - epic.labels)
    return add, remove


def _persist(store: CacheStore | None, identity: str | None, cache: Cache) -> None:
    if store is None:
        return
    if not identity:
        raise ValueError("Saving the cache requires a repository identity")
    store.save(identity, cache)


def sync_epic(
    cache: Cache,
    epic_number: int,
    client,
    config: Config,
    repo_path: Path | None = None,
    store: CacheStore | None = None,
    identity: str | None = None,
) -> SyncOutcome:
    """
    Push one epic's body to GitHub if it is dirty.

    Args:
        cache: Loaded cache (mutated in place)
        epic_number: Epic issue number
        client: Remote tracker client (GitHubClient or compatible)
        config: Loaded configuration
        repo_path: Repository root, used to resolve relative plan_file paths
        store: If given, the cache is saved after a successful push
        identity: Repository hash used with store

    Returns:
        SyncOutcome

    Raises:
        ValidationError: epic_number is not a positive int
        NotFoundError: epic is not in the cache
        FatalRemoteError: GitHub rejected the update for a non-retryable reason
    """
    validate_epic_number(epic_number)

    if not config.tracking.auto_update_epics:
        logger.info("Epic auto-updates disabled in config")
        return SyncOutcome.DISABLED

    epic = cache.require_epic(epic_number)
    if not epic.dirty:
        logger.debug(f"Epic #{epic_number} is already in sync")
        return SyncOutcome.SKIPPED_CLEAN

    # Snapshot: entries appended after this point go out with the next sync
    body = render_epic_body(epic, repo_path)
    add_labels, remove_labels = status_label_changes(epic)
    fsm = EpicSyncFSM(epic)

    try:
        client.update_issue_body(epic_number, body, add_labels=add_labels, remove_labels=remove_labels)
    except TransientRemoteError as e:
        fsm.sync_deferred()
        logger.warning(f"Deferred sync of epic #{epic_number}, will retry: {e}")
        return SyncOutcome.DEFERRED
    except FatalRemoteError as e:
        fsm.sync_failed()
        logger.error(f"Failed to sync epic #{epic_number}: {e}")
        raise

    fsm.sync_succeeded()
    epic.updated_at = now_iso()
    _persist(store, identity, cache)

    logger.info(f"Synced epic #{epic_number} to GitHub")
    return SyncOutcome.SYNCED


def sync_dirty_epics(
    cache: Cache,
    client,
    config: Config,
    repo_path: Path | None = None,
    store: CacheStore | None = None,
    identity: str | None = None,
) -> BatchSyncResult:
    """
    Sync every dirty epic once. Used at session end.

    Transient failures are deferred, fatal and not-found failures are
    recorded and skipped. The cache is saved once at the end if anything
    was pushed.
    """
    result = BatchSyncResult()

    if not config.tracking.auto_update_epics:
        logger.info("Epic auto-updates disabled in config")
        result.disabled = True
        return result

    dirty = cache.dirty_epics()
    if not dirty:
        logger.info("No epics need syncing")
        return result

    logger.info(f"Syncing {len(dirty)} epic(s) to GitHub")

    for epic in dirty:
        try:
            outcome = sync_epic(cache, epic.number, client, config, repo_path)
        except (NotFoundError, FatalRemoteError) as e:
            result.failed.append((epic.number, str(e)))
            continue

        if outcome is SyncOutcome.SYNCED:
            result.synced.append(epic.number)
        elif outcome is SyncOutcome.DEFERRED:
            result.deferred.append(epic.number)

    if result.synced:
        _persist(store, identity, cache)

    logger.info(
        f"Sync pass complete: {result.success_count} synced, "
        f"{len(result.deferred)} deferred, {len(result.failed)} failed"
    )
    return result
