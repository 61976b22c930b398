"""Tests for powerlevel.tracking.commits module."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from powerlevel.git.log import Commit
from powerlevel.git.runner import GitResult
from powerlevel.tracking.commits import (
    CompletedTask,
    apply_completed_tasks,
    detect_task_from_commit,
    find_completed_tasks,
)
from powerlevel.tracking.models import Cache, Epic, Issue, MirrorItem


def make_commit(message, sha="abc1234def5678", timestamp="2026-01-05T10:00:00+00:00"):
    return Commit(hash=sha, message=message, timestamp=timestamp)


def make_cache():
    cache = Cache(epics=[Epic(number=42, title="Login flow")])
    cache.add_sub_issue(42, MirrorItem(number=101, title="Task 1: Add login form"))
    cache.get_epic(42).dirty = False
    return cache


class TestDetectTaskFromCommit:
    """Test detect_task_from_commit function."""

    def test_closes_reference(self):
        ref = detect_task_from_commit("feat: add login closes #101")
        assert (ref.issue_number, ref.keyword) == (101, "closes")

    @pytest.mark.parametrize("keyword", ["fixes", "resolves", "completes"])
    def test_other_keywords(self, keyword):
        assert detect_task_from_commit(f"{keyword} #7").keyword == keyword

    def test_keyword_is_case_insensitive(self):
        assert detect_task_from_commit("Fixes #12: typo").keyword == "fixes"

    def test_plain_reference_is_ignored(self):
        assert detect_task_from_commit("related to #101") is None

    def test_first_reference_wins(self):
        assert detect_task_from_commit("closes #3, fixes #4").issue_number == 3

    def test_empty_message(self):
        assert detect_task_from_commit("") is None


class TestFindCompletedTasks:
    """Test find_completed_tasks function."""

    @patch("powerlevel.git.log.run_git")
    def test_returns_closing_commits_in_order(self, mock_run_git):
        mock_run_git.return_value = GitResult(
            returncode=0,
            stdout=(
                "aaa1111\x1ffeat: add login closes #101\x1f2026-01-05T10:00:00+00:00\n"
                "bbb2222\x1fchore: tidy\x1f2026-01-05T11:00:00+00:00\n"
                "ccc3333\x1ffix: layout fixes #102\x1f2026-01-05T12:00:00+00:00\n"
            ),
            stderr="",
        )

        completed = find_completed_tasks("2026-01-05T00:00:00+00:00", Path("/repo"))

        assert [c.issue_number for c in completed] == [101, 102]
        assert completed[0].commit.hash == "aaa1111"
        args = mock_run_git.call_args[0][0]
        assert "--since=2026-01-05T00:00:00+00:00" in args

    @patch("powerlevel.git.log.run_git")
    def test_git_failure_returns_empty(self, mock_run_git):
        mock_run_git.return_value = GitResult(returncode=128, stdout="", stderr="not a git repository")
        assert find_completed_tasks("2026-01-05T00:00:00+00:00", Path("/repo")) == []


class TestApplyCompletedTasks:
    """Test apply_completed_tasks function."""

    def test_records_completion_and_closes_sub_issue(self):
        cache = make_cache()
        task = CompletedTask(issue_number=101, keyword="closes", commit=make_commit("closes #101"))

        updated = apply_completed_tasks(cache, [task])

        assert updated == [42]
        epic = cache.get_epic(42)
        assert epic.dirty is True
        entry = epic.journey[-1]
        assert entry.message == "Task 1 completed: Add login form"
        assert entry.agent == "git-commit-abc1234"
        assert epic.sub_issues[0].state == "closed"
        assert epic.sub_issues[0].closed_at == "2026-01-05T10:00:00+00:00"
        assert cache.get_issue(101).state == "closed"

    def test_unknown_issue_is_skipped(self, caplog):
        cache = make_cache()
        task = CompletedTask(issue_number=999, keyword="fixes", commit=make_commit("fixes #999"))

        assert apply_completed_tasks(cache, [task]) == []
        assert "not found in cache" in caplog.text
        assert cache.get_epic(42).dirty is False

    def test_title_without_task_number_is_skipped(self, caplog):
        cache = make_cache()
        cache.add_issue(Issue(number=150, title="Refactor helpers", epic=42))
        task = CompletedTask(issue_number=150, keyword="closes", commit=make_commit("closes #150"))

        assert apply_completed_tasks(cache, [task]) == []
        assert "Could not extract task number" in caplog.text

    def test_issue_without_epic_is_skipped(self):
        cache = make_cache()
        cache.add_issue(Issue(number=160, title="Task 3: Orphan"))
        task = CompletedTask(issue_number=160, keyword="closes", commit=make_commit("closes #160"))
        assert apply_completed_tasks(cache, [task]) == []

    def test_epic_reported_once(self):
        cache = make_cache()
        cache.add_sub_issue(42, MirrorItem(number=102, title="Task 2: Add logout"))
        tasks = [
            CompletedTask(issue_number=101, keyword="closes", commit=make_commit("closes #101")),
            CompletedTask(issue_number=102, keyword="fixes", commit=make_commit("fixes #102", sha="fff0000aaa")),
        ]
        assert apply_completed_tasks(cache, tasks) == [42]
        assert len(cache.get_epic(42).journey) == 2

    def test_already_closed_issue_is_not_recorded_twice(self, caplog):
        caplog.set_level("INFO")
        cache = make_cache()
        tasks = [
            CompletedTask(issue_number=101, keyword="closes", commit=make_commit("closes #101")),
            CompletedTask(issue_number=101, keyword="fixes", commit=make_commit("fixes #101", sha="eee9999bbb")),
        ]

        assert apply_completed_tasks(cache, tasks) == [42]

        journey = cache.get_epic(42).journey
        assert len(journey) == 1
        assert journey[0].agent == "git-commit-abc1234"
        assert "already closed" in caplog.text

    def test_issue_closed_before_run_is_skipped(self):
        cache = make_cache()
        cache.get_issue(101).state = "closed"
        task = CompletedTask(issue_number=101, keyword="closes", commit=make_commit("closes #101"))

        assert apply_completed_tasks(cache, [task]) == []
        assert cache.get_epic(42).journey == []
        assert cache.get_epic(42).dirty is False

    def test_passes_client_for_comments(self):
        cache = make_cache()
        client = MagicMock()
        config = MagicMock()
        config.tracking.comment_on_progress = True
        task = CompletedTask(issue_number=101, keyword="closes", commit=make_commit("closes #101"))

        apply_completed_tasks(cache, [task], client=client, config=config)

        client.add_comment.assert_called_once()
