"""
powerlevel status / labels - Cache overview and label setup.
"""

from powerlevel.lib.context import RepoContext
from powerlevel.lib.errors import RemoteError
from powerlevel.lib.labels import STATUS_NAMESPACE, ensure_labels_exist, labels_in_namespace


def cmd_status(args, ctx: RepoContext) -> int:
    """Show cached epics and which ones have unpushed changes."""
    cache = ctx.store.load(ctx.cache_key)

    print(f"Repository: {ctx.identity.full_name}")
    print(f"Cache: {ctx.store.path_for(ctx.cache_key)}")
    if cache.last_task_check:
        print(f"Last task check: {cache.last_task_check}")
    print()

    if not cache.epics:
        print("No epics cached")
        return 0

    for epic in cache.epics:
        flag = "*" if epic.dirty else " "
        status = ", ".join(sorted(labels_in_namespace(epic.labels, STATUS_NAMESPACE))) or "-"
        kind = f" -> {epic.external_repo}" if epic.is_tracking_epic else ""
        print(f" {flag} #{epic.number:<6} {epic.state:<7} {status:<20} {epic.title}{kind}")

    dirty = cache.dirty_epics()
    if dirty:
        print(f"\n{len(dirty)} epic(s) have unpushed changes (*)")
    return 0


def cmd_labels(args, ctx: RepoContext) -> int:
    """Create any missing tracking labels in the repository."""
    try:
        created = ensure_labels_exist(ctx.client)
    except RemoteError as e:
        print(f"ERROR: Could not list labels: {e}")
        return 1

    if created:
        print(f"Created {len(created)} label(s):")
        for name in created:
            print(f"  {name}")
    else:
        print("All labels already exist")
    return 0
