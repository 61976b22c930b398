"""
powerlevel epic create / track - Create epics on GitHub and cache them.
"""

from powerlevel.lib.context import RepoContext
from powerlevel.lib.errors import RemoteError, ValidationError
from powerlevel.lib.labels import ensure_labels_exist
from powerlevel.tracking.epics import create_epic_from_plan, create_tracking_epic, issue_url


def cmd_epic_create(args, ctx: RepoContext) -> int:
    """Create an epic and its task sub-issues from a plan file."""
    try:
        ensure_labels_exist(ctx.client)
    except RemoteError as e:
        print(f"Warning: Could not check labels ({e}), continuing")

    with ctx.store.lock(ctx.cache_key):
        cache = ctx.store.load(ctx.cache_key)
        try:
            epic = create_epic_from_plan(
                cache, args.plan, ctx.client, repo_path=ctx.repo_path, force=args.force,
            )
        except (FileNotFoundError, ValidationError) as e:
            print(f"ERROR: {e}")
            return 2
        except RemoteError as e:
            print(f"ERROR: Could not create epic: {e}")
            return 1
        ctx.store.save(ctx.cache_key, cache)

    print(f"Created epic #{epic.number}: {epic.title}")
    for item in epic.sub_issues:
        print(f"  #{item.number} {item.title}")
    print(issue_url(ctx.identity.full_name, epic.number))
    return 0


def cmd_track(args, ctx: RepoContext) -> int:
    """Create a tracking epic for an external repository."""
    with ctx.store.lock(ctx.cache_key):
        cache = ctx.store.load(ctx.cache_key)
        try:
            epic = create_tracking_epic(
                cache,
                args.external_repo,
                ctx.client,
                description=args.description,
                priority=args.priority,
                name=args.name,
            )
        except ValidationError as e:
            print(f"ERROR: {e}")
            return 2
        except RemoteError as e:
            print(f"ERROR: Could not create tracking epic: {e}")
            return 1
        ctx.store.save(ctx.cache_key, cache)

    print(f"Created tracking epic #{epic.number} for {epic.external_repo}")
    print(f"  {len(epic.tracked_items)} open issue(s) mirrored")
    print(issue_url(ctx.identity.full_name, epic.number))
    return 0
