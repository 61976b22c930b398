"""
Label definitions and namespace helpers.

Labels are namespaced by prefix ("status/", "priority/", "project/").
An epic carries at most one label per exclusive namespace.
"""

import logging

from powerlevel.lib.errors import RemoteError

logger = logging.getLogger(__name__)


STATUS_NAMESPACE = "status/"
PROJECT_NAMESPACE = "project/"

STATUS_PLANNING = "status/planning"
STATUS_IN_PROGRESS = "status/in-progress"
STATUS_BLOCKED = "status/blocked"
STATUS_REVIEW = "status/review"
STATUS_DONE = "status/done"

STATUS_LABELS = {
    STATUS_PLANNING,
    STATUS_IN_PROGRESS,
    STATUS_BLOCKED,
    STATUS_REVIEW,
    STATUS_DONE,
}

# name -> (color, description)
LABELS = {
    "priority/p0": ("b60205", "Critical priority epic"),
    "priority/p1": ("d93f0b", "High priority epic"),
    "priority/p2": ("fbca04", "Medium priority epic"),
    "priority/p3": ("0e8a16", "Low priority epic"),
    "task/p0": ("b60205", "Critical priority task"),
    "task/p1": ("d93f0b", "High priority task"),
    "task/p2": ("fbca04", "Medium priority task"),
    "task/p3": ("0e8a16", "Low priority task"),
    "type/epic": ("5319e7", "Epic issue"),
    "type/task": ("1d76db", "Task issue"),
    STATUS_PLANNING: ("d4c5f9", "In planning phase"),
    STATUS_IN_PROGRESS: ("c2e0c6", "Work in progress"),
    STATUS_BLOCKED: ("d73a4a", "Blocked by dependency"),
    STATUS_REVIEW: ("fbca04", "In review"),
    STATUS_DONE: ("0e8a16", "Completed"),
}


def replace_in_namespace(labels: set[str], namespace: str, new_label: str) -> set[str]:
    """Return a copy of labels with every `namespace` label removed and new_label added.

    >>> sorted(replace_in_namespace({"status/planning", "type/epic"}, "status/", "status/review"))
    ['status/review', 'type/epic']
    """
    if not new_label.startswith(namespace):
        raise ValueError(f"Label '{new_label}' is not in namespace '{namespace}'")
    result = {label for label in labels if not label.startswith(namespace)}
    result.add(new_label)
    return result


def labels_in_namespace(labels: set[str], namespace: str) -> set[str]:
    """Labels that start with the given prefix."""
    return {label for label in labels if label.startswith(namespace)}


def ensure_labels_exist(client) -> list[str]:
    """Create any missing labels from LABELS. Idempotent.

    Returns the names of labels that were created.
    """
    existing = set(client.list_labels())
    missing = [name for name in LABELS if name not in existing]
    if not missing:
        logger.info("All required labels already exist")
        return []

    logger.info(f"Creating {len(missing)} missing labels")
    created = []
    for name in missing:
        color, description = LABELS[name]
        try:
            client.create_label(name, color, description)
            created.append(name)
        except RemoteError as e:
            logger.warning(f"Failed to create label {name}: {e}")
    return created
