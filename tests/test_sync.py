"""Tests for powerlevel.tracking.sync module."""

from unittest.mock import MagicMock

import pytest

from powerlevel.lib.config import Config, TrackingConfig
from powerlevel.lib.errors import FatalRemoteError, NotFoundError, TransientRemoteError, ValidationError
from powerlevel.tracking.cache import CacheStore
from powerlevel.tracking.journey import record_task_completion
from powerlevel.tracking.models import Cache, Epic
from powerlevel.tracking.sync import (
    BatchSyncResult,
    SyncOutcome,
    status_label_changes,
    sync_dirty_epics,
    sync_epic,
)


IDENTITY = "0123456789abcdef"


def make_cache(*numbers, dirty=True):
    return Cache(epics=[
        Epic(number=n, title=f"Epic {n}", dirty=dirty, updated_at="2026-01-01T00:00:00+00:00")
        for n in numbers
    ])


class TestSyncEpic:
    """Test sync_epic function."""

    def test_success_clears_dirty_and_sends_journey(self):
        cache = make_cache(42, dirty=False)
        record_task_completion(cache, 42, 1, "done thing")
        client = MagicMock()

        outcome = sync_epic(cache, 42, client, Config())

        assert outcome is SyncOutcome.SYNCED
        epic = cache.get_epic(42)
        assert epic.dirty is False
        assert epic.updated_at != "2026-01-01T00:00:00+00:00"
        number, body = client.update_issue_body.call_args[0]
        assert number == 42
        assert "Task 1 completed: done thing" in body
        assert "## Progress Journey" in body

    def test_transient_failure_keeps_dirty(self, caplog):
        cache = make_cache(42)
        client = MagicMock()
        client.update_issue_body.side_effect = TransientRemoteError("API rate limit exceeded")

        outcome = sync_epic(cache, 42, client, Config())

        assert outcome is SyncOutcome.DEFERRED
        assert cache.get_epic(42).dirty is True
        assert cache.get_epic(42).updated_at == "2026-01-01T00:00:00+00:00"
        assert "Deferred sync of epic #42" in caplog.text

    def test_fatal_failure_raises_and_keeps_dirty(self):
        cache = make_cache(42)
        client = MagicMock()
        client.update_issue_body.side_effect = FatalRemoteError("Could not resolve to an Issue")

        with pytest.raises(FatalRemoteError):
            sync_epic(cache, 42, client, Config())
        assert cache.get_epic(42).dirty is True

    def test_clean_epic_is_not_pushed(self):
        cache = make_cache(42, dirty=False)
        client = MagicMock()

        assert sync_epic(cache, 42, client, Config()) is SyncOutcome.SKIPPED_CLEAN
        client.update_issue_body.assert_not_called()

    def test_second_sync_is_a_no_op(self):
        cache = make_cache(42)
        client = MagicMock()

        sync_epic(cache, 42, client, Config())
        sync_epic(cache, 42, client, Config())

        assert client.update_issue_body.call_count == 1

    def test_disabled_config_skips_remote(self):
        cache = make_cache(42)
        client = MagicMock()
        config = Config(tracking=TrackingConfig(auto_update_epics=False))

        assert sync_epic(cache, 42, client, config) is SyncOutcome.DISABLED
        client.update_issue_body.assert_not_called()
        assert cache.get_epic(42).dirty is True

    def test_unknown_epic_raises(self):
        with pytest.raises(NotFoundError):
            sync_epic(make_cache(42), 7, MagicMock(), Config())

    def test_invalid_epic_number_raises(self):
        with pytest.raises(ValidationError):
            sync_epic(make_cache(42), 0, MagicMock(), Config())

    def test_pushes_status_labels(self):
        cache = make_cache(42)
        cache.get_epic(42).labels = {"status/in-progress", "type/epic"}
        client = MagicMock()

        sync_epic(cache, 42, client, Config())

        kwargs = client.update_issue_body.call_args[1]
        assert kwargs["add_labels"] == ["status/in-progress"]
        assert "status/planning" in kwargs["remove_labels"]
        assert "status/in-progress" not in kwargs["remove_labels"]

    def test_persists_on_success(self, tmp_path):
        store = CacheStore(tmp_path)
        cache = make_cache(42)

        sync_epic(cache, 42, MagicMock(), Config(), store=store, identity=IDENTITY)

        assert store.load(IDENTITY).get_epic(42).dirty is False

    def test_store_without_identity_raises(self, tmp_path):
        with pytest.raises(ValueError):
            sync_epic(make_cache(42), 42, MagicMock(), Config(), store=CacheStore(tmp_path))


class TestSyncDirtyEpics:
    """Test sync_dirty_epics function."""

    def test_syncs_only_dirty_epics(self):
        cache = make_cache(1, 2)
        cache.add_epic(Epic(number=3, title="Clean"))
        client = MagicMock()

        result = sync_dirty_epics(cache, client, Config())

        assert result.synced == [1, 2]
        assert client.update_issue_body.call_count == 2
        assert cache.dirty_epics() == []

    def test_rate_limit_does_not_escape(self, caplog):
        cache = make_cache(1, 2)
        client = MagicMock()
        client.update_issue_body.side_effect = TransientRemoteError("API rate limit exceeded")

        result = sync_dirty_epics(cache, client, Config())

        assert result.deferred == [1, 2]
        assert result.failure_count == 2
        assert result.ok
        assert len(cache.dirty_epics()) == 2
        assert "rate limit" in caplog.text

    def test_fatal_failure_does_not_stop_batch(self):
        cache = make_cache(1, 2)
        client = MagicMock()
        client.update_issue_body.side_effect = [FatalRemoteError("not found"), None]

        result = sync_dirty_epics(cache, client, Config())

        assert result.failed == [(1, "not found")]
        assert result.synced == [2]
        assert not result.ok
        assert cache.get_epic(1).dirty is True

    def test_nothing_dirty(self):
        client = MagicMock()
        result = sync_dirty_epics(make_cache(1, dirty=False), client, Config())
        assert result == BatchSyncResult()
        client.update_issue_body.assert_not_called()

    def test_disabled(self):
        config = Config(tracking=TrackingConfig(auto_update_epics=False))
        result = sync_dirty_epics(make_cache(1), MagicMock(), config)
        assert result.disabled is True

    def test_saves_once_when_something_synced(self):
        store = MagicMock()
        sync_dirty_epics(make_cache(1, 2), MagicMock(), Config(), store=store, identity=IDENTITY)
        store.save.assert_called_once()

    def test_no_save_when_all_deferred(self):
        store = MagicMock()
        client = MagicMock()
        client.update_issue_body.side_effect = TransientRemoteError("timeout")
        sync_dirty_epics(make_cache(1), client, Config(), store=store, identity=IDENTITY)
        store.save.assert_not_called()


class TestStatusLabelChanges:
    """Test status_label_changes function."""

    def test_no_status_label_removes_all(self):
        add, remove = status_label_changes(Epic(number=1, title="x"))
        assert add == []
        assert len(remove) == 5
