"""
powerlevel commits - Record task completions from recent commit messages.
"""

from powerlevel.lib.context import RepoContext
from powerlevel.tracking.session import check_for_completed_tasks


def cmd_commits(args, ctx: RepoContext) -> int:
    with ctx.store.lock(ctx.cache_key):
        cache = ctx.store.load(ctx.cache_key)
        if args.since:
            cache.last_task_check = args.since
        updated = check_for_completed_tasks(cache, ctx.repo_path, ctx.client, ctx.config)
        ctx.store.save(ctx.cache_key, cache)

    if not updated:
        print("No task completions found")
        return 0

    print(f"Updated {len(updated)} epic(s): " + ", ".join(f"#{n}" for n in updated))
    print("Run 'powerlevel sync' to push to GitHub")
    return 0
