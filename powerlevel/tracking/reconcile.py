"""
External project reconciliation.

A tracking epic mirrors the open issues of another repository in its
tracked_items list. Each pass fetches the external repository's open issues
and converges the mirror onto that set:

- open remotely, not mirrored       -> new mirror item
- open remotely, mirrored as closed -> reopened
- mirrored as open, gone remotely   -> closed

The new list is built off to the side and swapped in together with the
dirty flag, so a failed fetch leaves the epic exactly as it was.
"""

import logging
from dataclasses import dataclass, field

from powerlevel.lib.errors import RemoteError, ValidationError
from powerlevel.lib.github import LIST_LIMIT, ExternalItem
from powerlevel.tracking.models import Cache, MirrorItem, STATE_CLOSED, STATE_OPEN, now_iso

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    epic_number: int
    created: list[int] = field(default_factory=list)
    reopened: list[int] = field(default_factory=list)
    closed: list[int] = field(default_factory=list)
    renamed: list[int] = field(default_factory=list)
    truncated: bool = False        # Listing hit the limit, closures were skipped
    error: str | None = None

    @property
    def changed(self) -> bool:
        return bool(self.created or self.reopened or self.closed or self.renamed)


def converge_mirror(
    mirror: list[MirrorItem],
    remote: list[ExternalItem],
    result: ReconcileResult,
    allow_close: bool = True,
) -> list[MirrorItem]:
    """
    Compute the mirror list that matches the remote open set.

    Pure with respect to its inputs: returns new MirrorItem objects and
    records what changed on result.
    """
    remote_by_number = {item.number: item for item in remote}
    timestamp = now_iso()
    converged = []

    for item in mirror:
        updated = MirrorItem(
            number=item.number,
            title=item.title,
            state=item.state,
            url=item.url,
            closed_at=item.closed_at,
        )
        seen = remote_by_number.get(item.number)

        if seen is not None:
            if not item.is_open:
                updated.state = STATE_OPEN
                updated.closed_at = None
                result.reopened.append(item.number)
            if (seen.title and seen.title != item.title) or (seen.url and seen.url != item.url):
                updated.title = seen.title or item.title
                updated.url = seen.url or item.url
                result.renamed.append(item.number)
        elif item.is_open and allow_close:
            updated.state = STATE_CLOSED
            updated.closed_at = timestamp
            result.closed.append(item.number)

        converged.append(updated)

    mirrored = {item.number for item in mirror}
    for seen in remote:
        if seen.number not in mirrored:
            converged.append(MirrorItem(number=seen.number, title=seen.title, state=STATE_OPEN, url=seen.url))
            result.created.append(seen.number)
            mirrored.add(seen.number)

    return converged


def reconcile_tracking_epic(cache: Cache, epic_number: int, client, limit: int = LIST_LIMIT) -> ReconcileResult:
    """
    Run one reconciliation pass for a tracking epic.

    Raises:
        NotFoundError: epic is not in the cache
        ValidationError: epic doesn't track an external repository
        TransientRemoteError, FatalRemoteError: fetching open issues failed;
            the cache is unchanged
    """
    epic = cache.require_epic(epic_number)
    if not epic.is_tracking_epic:
        raise ValidationError(f"Epic #{epic_number} does not track an external repository")

    remote = client.list_open_issues(epic.external_repo, limit=limit)

    result = ReconcileResult(epic_number=epic_number)
    # A full page may be cut short; closing unseen items would then be wrong
    result.truncated = len(remote) >= limit
    if result.truncated:
        logger.warning(
            f"{epic.external_repo} returned {len(remote)} issues (limit {limit}), "
            f"not closing unseen items for epic #{epic_number}"
        )

    converged = converge_mirror(epic.tracked_items, remote, result, allow_close=not result.truncated)

    if result.changed:
        epic.tracked_items = converged
        epic.dirty = True
        logger.info(
            f"Reconciled epic #{epic_number} with {epic.external_repo}: "
            f"{len(result.created)} new, {len(result.reopened)} reopened, {len(result.closed)} closed"
        )
    else:
        logger.debug(f"Epic #{epic_number} already matches {epic.external_repo}")

    return result


def reconcile_all(cache: Cache, client, limit: int = LIST_LIMIT) -> list[ReconcileResult]:
    """Reconcile every open tracking epic. One epic's fetch failure doesn't stop the rest."""
    results = []
    for epic in cache.tracking_epics():
        try:
            results.append(reconcile_tracking_epic(cache, epic.number, client, limit=limit))
        except RemoteError as e:
            logger.warning(f"Skipped reconciliation of epic #{epic.number}: {e}")
            results.append(ReconcileResult(epic_number=epic.number, error=str(e)))
    return results
