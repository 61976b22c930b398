"""Tests for powerlevel.lib.github module."""

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from powerlevel.lib.errors import FatalRemoteError, TransientRemoteError
from powerlevel.lib.github import (
    GH_TIMEOUT_SECONDS,
    GitHubClient,
    check_gh_available,
    is_transient_error,
    parse_issue_number,
)


def completed(returncode=0, stdout="", stderr=""):
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


class TestConstants:
    """Test module constants."""

    def test_gh_timeout_is_reasonable(self):
        assert 10 <= GH_TIMEOUT_SECONDS <= 120


class TestIsTransientError:
    """Test is_transient_error function."""

    @pytest.mark.parametrize("stderr", [
        "API rate limit exceeded for user",
        "HTTP 502: Bad Gateway",
        "dial tcp: lookup api.github.com: Could not resolve host",
        "connection reset by peer",
        "request timed out",
    ])
    def test_transient(self, stderr):
        assert is_transient_error(stderr)

    @pytest.mark.parametrize("stderr", [
        "GraphQL: Could not resolve to an Issue with the number of 999",
        "HTTP 401: Bad credentials",
        "HTTP 404: Not Found",
    ])
    def test_fatal(self, stderr):
        assert not is_transient_error(stderr)


class TestParseIssueNumber:
    """Test parse_issue_number function."""

    def test_parses_url(self):
        assert parse_issue_number("https://github.com/acme/widgets/issues/57\n") == 57

    def test_returns_none_without_url(self):
        assert parse_issue_number("created") is None


class TestCheckGhAvailable:
    """Test check_gh_available function."""

    @patch("powerlevel.lib.github.subprocess.run")
    def test_ok_when_authenticated(self, mock_run):
        mock_run.return_value = completed()
        assert check_gh_available() == (True, "")

    @patch("powerlevel.lib.github.subprocess.run")
    def test_not_authenticated(self, mock_run):
        mock_run.side_effect = [completed(), completed(returncode=1)]
        ok, error = check_gh_available()
        assert not ok
        assert "gh auth login" in error

    @patch("powerlevel.lib.github.subprocess.run")
    def test_not_installed(self, mock_run):
        mock_run.side_effect = FileNotFoundError()
        ok, error = check_gh_available()
        assert not ok
        assert "not found" in error


class TestGitHubClient:
    """Test GitHubClient error classification and commands."""

    @patch("powerlevel.lib.github.subprocess.run")
    def test_update_issue_body_sends_body_on_stdin(self, mock_run):
        mock_run.return_value = completed()
        client = GitHubClient("acme/widgets")

        client.update_issue_body(42, "## Goal\n\nx", add_labels=["status/review"], remove_labels=["status/planning"])

        cmd = mock_run.call_args[0][0]
        assert cmd[:4] == ["gh", "issue", "edit", "42"]
        assert "--body-file" in cmd
        assert cmd[cmd.index("--add-label") + 1] == "status/review"
        assert cmd[cmd.index("--remove-label") + 1] == "status/planning"
        assert mock_run.call_args[1]["input"] == "## Goal\n\nx"

    @patch("powerlevel.lib.github.subprocess.run")
    def test_rate_limit_is_transient(self, mock_run):
        mock_run.return_value = completed(returncode=1, stderr="API rate limit exceeded")
        with pytest.raises(TransientRemoteError) as exc_info:
            GitHubClient("acme/widgets").update_issue_body(42, "body")
        assert exc_info.value.stderr == "API rate limit exceeded"

    @patch("powerlevel.lib.github.subprocess.run")
    def test_not_found_is_fatal(self, mock_run):
        mock_run.return_value = completed(returncode=1, stderr="Could not resolve to an Issue")
        with pytest.raises(FatalRemoteError):
            GitHubClient("acme/widgets").update_issue_body(42, "body")

    @patch("powerlevel.lib.github.subprocess.run")
    def test_timeout_is_transient(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="gh", timeout=30)
        with pytest.raises(TransientRemoteError):
            GitHubClient("acme/widgets").add_comment(42, "hi")

    @patch("powerlevel.lib.github.subprocess.run")
    def test_missing_gh_is_fatal(self, mock_run):
        mock_run.side_effect = FileNotFoundError()
        with pytest.raises(FatalRemoteError):
            GitHubClient("acme/widgets").add_comment(42, "hi")

    @patch("powerlevel.lib.github.subprocess.run")
    def test_create_issue_returns_number(self, mock_run):
        mock_run.return_value = completed(stdout="https://github.com/acme/widgets/issues/88\n")
        number = GitHubClient("acme/widgets").create_issue("Epic", "body", labels=["type/epic"])
        assert number == 88
        cmd = mock_run.call_args[0][0]
        assert cmd[cmd.index("--label") + 1] == "type/epic"

    @patch("powerlevel.lib.github.subprocess.run")
    def test_list_open_issues_prefers_epic_label(self, mock_run):
        mock_run.return_value = completed(stdout=json.dumps([
            {"number": 3, "title": "Upstream epic", "state": "OPEN", "url": "https://github.com/o/p/issues/3"},
        ]))

        items = GitHubClient("acme/widgets").list_open_issues("o/p", limit=50)

        assert [(i.number, i.state) for i in items] == [(3, "open")]
        cmd = mock_run.call_args[0][0]
        assert cmd[cmd.index("--label") + 1] == "type/epic"
        assert cmd[cmd.index("--limit") + 1] == "50"
        assert mock_run.call_count == 1

    @patch("powerlevel.lib.github.subprocess.run")
    def test_list_open_issues_falls_back_to_all(self, mock_run):
        mock_run.side_effect = [
            completed(stdout="[]"),
            completed(stdout="[]"),
            completed(stdout=json.dumps([{"number": 9, "title": "Any", "state": "OPEN", "url": None}])),
        ]

        items = GitHubClient("acme/widgets").list_open_issues("o/p")

        assert [i.number for i in items] == [9]
        assert "--label" not in mock_run.call_args[0][0]

    @patch("powerlevel.lib.github.subprocess.run")
    def test_list_open_issues_bad_json_is_fatal(self, mock_run):
        mock_run.return_value = completed(stdout="not json")
        with pytest.raises(FatalRemoteError):
            GitHubClient("acme/widgets").list_open_issues("o/p")

    @patch("powerlevel.lib.github.subprocess.run")
    def test_list_labels(self, mock_run):
        mock_run.return_value = completed(stdout='[{"name": "type/epic"}, {"name": "bug"}]')
        assert GitHubClient("acme/widgets").list_labels() == ["type/epic", "bug"]
