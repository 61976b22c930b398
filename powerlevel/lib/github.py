"""
GitHub integration via the gh CLI.

GitHubClient is the remote tracker client used by the sync engine and the
reconciliation pass. Every failure is raised as either TransientRemoteError
(retry later) or FatalRemoteError (needs attention).
"""

import json
import logging
import re
import subprocess
from dataclasses import dataclass

from powerlevel.lib.errors import FatalRemoteError, TransientRemoteError

logger = logging.getLogger(__name__)


# Timeout for GitHub CLI operations (seconds)
GH_TIMEOUT_SECONDS = 30

# Upper bound on items fetched per external repository listing
LIST_LIMIT = 100

# Label filters tried in order when listing an external project's open work
EXTERNAL_LABEL_FALLBACK = ["type/epic", "epic", None]

ISSUE_URL_RE = re.compile(r'/issues/(\d+)')

# stderr fragments (lower-cased) that mean "try again later"
TRANSIENT_MARKERS = (
    "rate limit",
    "timed out",
    "timeout",
    "network",
    "connection reset",
    "connection refused",
    "could not resolve host",
    "tls handshake",
    "http 500",
    "http 502",
    "http 503",
    "http 504",
)


@dataclass
class ExternalItem:
    """An open issue in an external repository."""
    number: int
    title: str
    url: str | None = None
    state: str = "open"


def is_transient_error(stderr: str) -> bool:
    """True if gh's error output describes a retryable failure."""
    text = stderr.lower()
    return any(marker in text for marker in TRANSIENT_MARKERS)


def parse_issue_number(output: str) -> int | None:
    """Extract the issue number from `gh issue create` output (an issue URL)."""
    match = ISSUE_URL_RE.search(output)
    return int(match.group(1)) if match else None


def check_gh_available() -> tuple[bool, str]:
    """Check gh CLI is installed and authenticated.

    Returns: (ok, error_message)
    """
    try:
        result = subprocess.run(
            ["gh", "--version"],
            capture_output=True,
            timeout=5,
        )
        if result.returncode != 0:
            return False, "GitHub CLI (gh) not installed\n  Install: https://cli.github.com/"

        result = subprocess.run(
            ["gh", "auth", "status"],
            capture_output=True,
            text=True,
            timeout=10,
        )
        if result.returncode != 0:
            return False, "GitHub CLI not authenticated\n  Run: gh auth login"

        return True, ""

    except FileNotFoundError:
        return False, "GitHub CLI (gh) not found\n  Install: https://cli.github.com/"
    except subprocess.TimeoutExpired:
        return False, "GitHub CLI timed out"


class GitHubClient:
    """Thin wrapper over `gh` for one repository (owner/repo)."""

    def __init__(self, repo: str, timeout: int = GH_TIMEOUT_SECONDS):
        self.repo = repo
        self.timeout = timeout

    def _run(self, args: list[str], input_text: str | None = None) -> str:
        """Run a gh command and return stdout, raising a classified error on failure."""
        cmd = ["gh"] + args
        try:
            result = subprocess.run(
                cmd,
                input=input_text,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            raise TransientRemoteError(f"gh {args[0]} timed out after {self.timeout}s") from None
        except FileNotFoundError:
            raise FatalRemoteError("GitHub CLI (gh) not found") from None
        except subprocess.SubprocessError as e:
            raise TransientRemoteError(f"gh {args[0]} failed: {e}") from None

        if result.returncode != 0:
            stderr = result.stderr.strip()
            if is_transient_error(stderr):
                raise TransientRemoteError(f"GitHub CLI error: {stderr}", stderr=stderr)
            raise FatalRemoteError(f"GitHub CLI error: {stderr}", stderr=stderr)

        return result.stdout.strip()

    def create_issue(self, title: str, body: str, labels: list[str] | None = None) -> int:
        """Create an issue and return its number."""
        args = ["issue", "create", "--repo", self.repo, "--title", title, "--body-file", "-"]
        for label in labels or []:
            args += ["--label", label]
        output = self._run(args, input_text=body)

        number = parse_issue_number(output)
        if number is None:
            raise FatalRemoteError(f"Failed to parse issue number from output: {output}")
        return number

    def update_issue_body(
        self,
        number: int,
        body: str,
        add_labels: list[str] | None = None,
        remove_labels: list[str] | None = None,
    ) -> None:
        """Overwrite an issue's body, optionally adjusting labels in the same call."""
        args = ["issue", "edit", str(number), "--repo", self.repo, "--body-file", "-"]
        for label in add_labels or []:
            args += ["--add-label", label]
        for label in remove_labels or []:
            args += ["--remove-label", label]
        self._run(args, input_text=body)

    def add_comment(self, number: int, text: str) -> None:
        self._run(
            ["issue", "comment", str(number), "--repo", self.repo, "--body-file", "-"],
            input_text=text,
        )

    def list_open_issues(self, external_repo: str, limit: int = LIST_LIMIT) -> list[ExternalItem]:
        """List open issues of another repository.

        Prefers issues labelled as epics, falling back to every open issue
        when the repository doesn't use epic labels.
        """
        data = []
        for label in EXTERNAL_LABEL_FALLBACK:
            args = [
                "issue", "list", "--repo", external_repo, "--state", "open",
                "--json", "number,title,state,url", "--limit", str(limit),
            ]
            if label:
                args += ["--label", label]
            output = self._run(args)
            try:
                data = json.loads(output) if output else []
            except json.JSONDecodeError:
                raise FatalRemoteError(f"Invalid JSON from gh issue list for {external_repo}") from None
            if data:
                break

        items = [
            ExternalItem(
                number=entry["number"],
                title=entry.get("title", ""),
                url=entry.get("url"),
                state=(entry.get("state") or "open").lower(),
            )
            for entry in data
        ]
        logger.info(f"Fetched {len(items)} open issues from {external_repo}")
        return items

    def list_labels(self) -> list[str]:
        output = self._run(["label", "list", "--repo", self.repo, "--json", "name", "--limit", "1000"])
        try:
            return [entry["name"] for entry in json.loads(output or "[]")]
        except (json.JSONDecodeError, KeyError, TypeError):
            raise FatalRemoteError("Invalid JSON from gh label list") from None

    def create_label(self, name: str, color: str, description: str) -> None:
        self._run([
            "label", "create", name, "--repo", self.repo,
            "--color", color, "--description", description, "--force",
        ])
