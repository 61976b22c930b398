"""
powerlevel journey - Add to and show an epic's progress journey.
"""

from powerlevel.lib.context import RepoContext
from powerlevel.lib.errors import NotFoundError, ValidationError
from powerlevel.tracking.journey import add_journey_entry, journey_newest_first, record_task_completion


def cmd_journey_add(args, ctx: RepoContext) -> int:
    """Append an entry and mark the epic dirty."""
    try:
        with ctx.store.lock(ctx.cache_key):
            cache = ctx.store.load(ctx.cache_key)
            if args.task is not None:
                entry = record_task_completion(
                    cache, args.epic, args.task, args.message,
                    agent=args.agent, client=ctx.client, config=ctx.config,
                )
            else:
                entry = add_journey_entry(cache, args.epic, {
                    "event": args.event,
                    "message": args.message,
                    "agent": args.agent,
                })
                cache.mark_dirty(args.epic)
            ctx.store.save(ctx.cache_key, cache)
    except (ValidationError, NotFoundError) as e:
        print(f"ERROR: {e}")
        return 2

    print(f"Epic #{args.epic}: {entry.message}")
    print("Run 'powerlevel sync' to push to GitHub")
    return 0


def cmd_journey_show(args, ctx: RepoContext) -> int:
    """Print an epic's journey, newest first."""
    cache = ctx.store.load(ctx.cache_key)
    epic = cache.get_epic(args.epic)
    if epic is None:
        print(f"ERROR: Epic #{args.epic} not found in cache")
        return 2

    if not epic.journey:
        print(f"Epic #{epic.number} has no journey entries")
        return 0

    print(f"Epic #{epic.number}: {epic.title}\n")
    for entry in journey_newest_first(epic):
        agent = f" ({entry.agent})" if entry.agent else ""
        print(f"  {entry.timestamp}  [{entry.event}] {entry.message}{agent}")
    return 0
