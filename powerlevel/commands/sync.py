"""
powerlevel sync - Push dirty epics to GitHub.
"""

from powerlevel.lib.context import RepoContext
from powerlevel.lib.errors import FatalRemoteError, NotFoundError, ValidationError
from powerlevel.tracking.session import land_the_plane
from powerlevel.tracking.sync import BatchSyncResult, SyncOutcome, sync_dirty_epics, sync_epic


def print_batch_result(result: BatchSyncResult) -> None:
    if result.disabled:
        print("Epic auto-updates are disabled (tracking.autoUpdateEpics)")
        return
    if not (result.synced or result.deferred or result.failed):
        print("All epics are in sync")
        return

    for number in result.synced:
        print(f"  synced    #{number}")
    for number in result.deferred:
        print(f"  deferred  #{number} (will retry)")
    for number, error in result.failed:
        print(f"  FAILED    #{number}: {error}")
    print(f"\n{result.success_count} synced, {result.failure_count} not synced")


def cmd_sync(args, ctx: RepoContext) -> int:
    """Sync one epic, every dirty epic, or run the full session checkpoint."""
    try:
        if args.land:
            result = land_the_plane(ctx.repo_path, ctx.cache_key, ctx.client, ctx.config, ctx.store)
            if result.completed_epics:
                epics = ", ".join(f"#{n}" for n in result.completed_epics)
                print(f"Recorded task completions on {epics}")
            print_batch_result(result.sync)
            return 0 if result.sync.ok else 1

        with ctx.store.lock(ctx.cache_key):
            cache = ctx.store.load(ctx.cache_key)

            if args.epic is None:
                result = sync_dirty_epics(
                    cache, ctx.client, ctx.config, ctx.repo_path,
                    store=ctx.store, identity=ctx.cache_key,
                )
                print_batch_result(result)
                return 0 if result.ok else 1

            outcome = sync_epic(
                cache, args.epic, ctx.client, ctx.config, ctx.repo_path,
                store=ctx.store, identity=ctx.cache_key,
            )
    except (ValidationError, NotFoundError) as e:
        print(f"ERROR: {e}")
        return 2
    except FatalRemoteError as e:
        print(f"ERROR: Sync failed: {e}")
        return 1

    messages = {
        SyncOutcome.SYNCED: f"Synced epic #{args.epic}",
        SyncOutcome.SKIPPED_CLEAN: f"Epic #{args.epic} is already in sync",
        SyncOutcome.DISABLED: "Epic auto-updates are disabled (tracking.autoUpdateEpics)",
        SyncOutcome.DEFERRED: f"Epic #{args.epic} not synced (transient error), will retry",
    }
    print(messages[outcome])
    return 0
