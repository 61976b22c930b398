"""
powerlevel skill - Apply a skill announcement to the matching epic.

Meant to be fed assistant messages by a hook. The message comes from the
argument or stdin.
"""

import sys

from powerlevel.lib.context import RepoContext
from powerlevel.lib.errors import FatalRemoteError, NotFoundError
from powerlevel.tracking.skills import handle_skill_invocation
from powerlevel.tracking.sync import SyncOutcome, sync_epic


def cmd_skill(args, ctx: RepoContext) -> int:
    message = args.message if args.message is not None else sys.stdin.read()

    with ctx.store.lock(ctx.cache_key):
        cache = ctx.store.load(ctx.cache_key)
        epic = handle_skill_invocation(cache, message, config=ctx.config, agent=args.agent)
        if epic is None:
            print("No epic updated")
            return 0

        ctx.store.save(ctx.cache_key, cache)
        print(f"Updated epic #{epic.number}")

        if not args.sync:
            return 0

        try:
            outcome = sync_epic(
                cache, epic.number, ctx.client, ctx.config, ctx.repo_path,
                store=ctx.store, identity=ctx.cache_key,
            )
        except (NotFoundError, FatalRemoteError) as e:
            print(f"ERROR: Sync failed: {e}")
            return 1

    if outcome is SyncOutcome.DEFERRED:
        print(f"Epic #{epic.number} not synced (transient error), will retry")
    return 0
