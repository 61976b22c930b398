"""
Epic tracking cache and synchronization engine.

Keeps a local cache of epics per repository, records progress in each
epic's journey, and pushes dirty epics to GitHub at checkpoints.
"""

from powerlevel.tracking.models import Cache, Epic, Issue, JourneyEntry, MirrorItem, ProjectBoard
from powerlevel.tracking.cache import CacheStore, LockTimeout
from powerlevel.tracking.journey import add_journey_entry, record_task_completion, sanitize
from powerlevel.tracking.sync import BatchSyncResult, SyncOutcome, sync_dirty_epics, sync_epic
from powerlevel.tracking.skills import detect_skill_invocation, handle_skill_invocation
from powerlevel.tracking.commits import apply_completed_tasks, detect_task_from_commit, find_completed_tasks
from powerlevel.tracking.reconcile import ReconcileResult, reconcile_all, reconcile_tracking_epic
from powerlevel.tracking.session import land_the_plane
from powerlevel.tracking.epics import create_epic_from_plan, create_tracking_epic

__all__ = [
    # models
    "Cache",
    "Epic",
    "Issue",
    "JourneyEntry",
    "MirrorItem",
    "ProjectBoard",
    # store
    "CacheStore",
    "LockTimeout",
    # journey
    "add_journey_entry",
    "record_task_completion",
    "sanitize",
    # sync
    "BatchSyncResult",
    "SyncOutcome",
    "sync_dirty_epics",
    "sync_epic",
    # detectors
    "detect_skill_invocation",
    "handle_skill_invocation",
    "apply_completed_tasks",
    "detect_task_from_commit",
    "find_completed_tasks",
    "ReconcileResult",
    "reconcile_all",
    "reconcile_tracking_epic",
    # checkpoint
    "land_the_plane",
    # creation
    "create_epic_from_plan",
    "create_tracking_epic",
]
