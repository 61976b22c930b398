"""Tests for powerlevel.tracking.fsm module."""

import pytest
from transitions import MachineError

from powerlevel.tracking.fsm import EpicSyncFSM, STATES, TRANSITIONS, sync_state
from powerlevel.tracking.models import Epic


class TestFSMStates:
    """Tests for FSM state definitions."""

    def test_all_states_defined(self):
        assert set(STATES) == {"clean", "dirty", "fatal"}

    def test_every_transition_targets_known_state(self):
        for transition in TRANSITIONS:
            assert transition["dest"] in STATES


class TestEpicSyncFSM:
    """Tests for EpicSyncFSM transitions and the dirty flag."""

    def test_initial_state_from_dirty_flag(self):
        assert EpicSyncFSM(Epic(number=1, title="x", dirty=True)).state == "dirty"
        assert EpicSyncFSM(Epic(number=1, title="x")).state == "clean"

    def test_sync_succeeded_clears_flag(self):
        epic = Epic(number=1, title="x", dirty=True)
        fsm = EpicSyncFSM(epic)
        fsm.sync_succeeded()
        assert fsm.state == "clean"
        assert epic.dirty is False

    def test_sync_deferred_keeps_flag(self):
        epic = Epic(number=1, title="x", dirty=True)
        fsm = EpicSyncFSM(epic)
        fsm.sync_deferred()
        assert fsm.state == "dirty"
        assert epic.dirty is True

    def test_sync_failed_keeps_flag(self):
        epic = Epic(number=1, title="x", dirty=True)
        fsm = EpicSyncFSM(epic)
        fsm.sync_failed()
        assert fsm.state == "fatal"
        assert epic.dirty is True

    def test_mark_dirty_from_fatal(self):
        epic = Epic(number=1, title="x", dirty=True)
        fsm = EpicSyncFSM(epic)
        fsm.sync_failed()
        fsm.mark_dirty()
        assert fsm.state == "dirty"

    def test_mark_dirty_from_clean_sets_flag(self):
        epic = Epic(number=1, title="x")
        EpicSyncFSM(epic).mark_dirty()
        assert epic.dirty is True

    def test_cannot_sync_clean_epic(self):
        fsm = EpicSyncFSM(Epic(number=1, title="x"))
        assert not fsm.can("sync_succeeded")
        with pytest.raises(MachineError):
            fsm.sync_succeeded()

    def test_logs_state_changes(self, caplog):
        caplog.set_level("INFO")
        EpicSyncFSM(Epic(number=9, title="x", dirty=True)).sync_succeeded()
        assert "[FSM] epic #9: dirty -> clean (sync_succeeded)" in caplog.text

    def test_sync_state_helper(self):
        assert sync_state(Epic(number=1, title="x", dirty=True)) == "dirty"
