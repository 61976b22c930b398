"""Epic sync state machine using transitions library.

The sync state of an epic is derived from its dirty flag and is not stored
anywhere else:

    clean --mark_dirty--> dirty --sync_succeeded--> clean
                          dirty --sync_deferred---> dirty   (transient failure)
                          dirty --sync_failed-----> fatal   (non-retryable failure)
    fatal --mark_dirty--> dirty

Entering `clean` clears the flag; `dirty` and `fatal` keep it set, so a
fatal epic is retried on the next pass rather than dropped.

Usage:
    fsm = EpicSyncFSM(epic)
    fsm.sync_succeeded()   # epic.dirty is now False
"""

import logging

from transitions import Machine

from powerlevel.tracking.models import Epic

logger = logging.getLogger(__name__)


STATE_CLEAN = "clean"
STATE_DIRTY = "dirty"
STATE_FATAL = "fatal"

STATES = [STATE_CLEAN, STATE_DIRTY, STATE_FATAL]

TRANSITIONS = [
    {"trigger": "mark_dirty", "source": [STATE_CLEAN, STATE_DIRTY, STATE_FATAL], "dest": STATE_DIRTY},
    {"trigger": "sync_succeeded", "source": STATE_DIRTY, "dest": STATE_CLEAN},
    {"trigger": "sync_deferred", "source": STATE_DIRTY, "dest": STATE_DIRTY},
    {"trigger": "sync_failed", "source": STATE_DIRTY, "dest": STATE_FATAL},
]


def sync_state(epic: Epic) -> str:
    """Logical sync state of an epic as stored (clean or dirty)."""
    return STATE_DIRTY if epic.dirty else STATE_CLEAN


class EpicSyncFSM:
    """State machine for one epic's dirty flag.

    Wraps the transitions library:
    - Initial state comes from epic.dirty
    - Every transition writes the flag back onto the epic
    - Logs all transitions
    """

    def __init__(self, epic: Epic):
        self.epic = epic
        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=sync_state(epic),
            auto_transitions=False,  # Only explicit transitions
            send_event=True,  # Pass EventData to callbacks
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        """Write the dirty flag back onto the epic after any transition."""
        from_state = event.transition.source
        to_state = event.transition.dest
        trigger = event.event.name

        self.epic.dirty = to_state != STATE_CLEAN
        if from_state != to_state:
            logger.info(f"[FSM] epic #{self.epic.number}: {from_state} -> {to_state} ({trigger})")

    def can(self, trigger: str) -> bool:
        """Check if a trigger can be executed in current state."""
        return trigger in self.machine.get_triggers(self.state)
