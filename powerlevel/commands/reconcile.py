"""
powerlevel reconcile - Converge tracking epics onto their external repositories.
"""

from powerlevel.lib.context import RepoContext
from powerlevel.lib.errors import NotFoundError, RemoteError, ValidationError
from powerlevel.tracking.reconcile import ReconcileResult, reconcile_all, reconcile_tracking_epic


def _print_result(result: ReconcileResult) -> None:
    if result.error:
        print(f"  #{result.epic_number}: skipped ({result.error})")
        return
    if not result.changed:
        print(f"  #{result.epic_number}: up to date")
        return
    print(
        f"  #{result.epic_number}: {len(result.created)} new, "
        f"{len(result.reopened)} reopened, {len(result.closed)} closed"
    )
    if result.truncated:
        print("    listing hit the limit, closures skipped")


def cmd_reconcile(args, ctx: RepoContext) -> int:
    with ctx.store.lock(ctx.cache_key):
        cache = ctx.store.load(ctx.cache_key)
        try:
            if args.epic is not None:
                results = [reconcile_tracking_epic(cache, args.epic, ctx.client)]
            else:
                results = reconcile_all(cache, ctx.client)
        except (ValidationError, NotFoundError) as e:
            print(f"ERROR: {e}")
            return 2
        except RemoteError as e:
            print(f"ERROR: Could not fetch external issues: {e}")
            return 1

        if any(r.changed for r in results):
            ctx.store.save(ctx.cache_key, cache)

    if not results:
        print("No tracking epics")
        return 0

    for result in results:
        _print_result(result)
    if any(r.changed for r in results):
        print("\nRun 'powerlevel sync' to push to GitHub")
    return 1 if any(r.error for r in results) else 0
