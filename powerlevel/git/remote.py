"""Git remote inspection and repository identity."""

import hashlib
import re
from dataclasses import dataclass
from pathlib import Path

from powerlevel.git.runner import run_git

HTTPS_RE = re.compile(r'^https://github\.com/([^/]+)/([^/]+?)(?:\.git)?/?$')
SSH_RE = re.compile(r'^(?:ssh://)?git@github\.com[:/]([^/]+)/([^/]+?)(?:\.git)?$')


@dataclass(frozen=True)
class RepoIdentity:
    """A GitHub repository, addressed as owner/repo."""
    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def hash(self) -> str:
        """Stable cache key: first 16 hex chars of sha256("owner/repo")."""
        return hashlib.sha256(self.full_name.encode("utf-8")).hexdigest()[:16]

    @classmethod
    def parse(cls, value: str) -> "RepoIdentity":
        """Parse "owner/repo". Raises ValueError on anything else."""
        owner, sep, repo = value.strip().partition("/")
        if not sep or not owner or not repo or "/" in repo:
            raise ValueError(f"Expected owner/repo, got '{value}'")
        return cls(owner=owner, repo=repo)


def parse_repo_url(url: str) -> RepoIdentity | None:
    """Parse an HTTPS or SSH GitHub remote URL."""
    if not url:
        return None
    url = url.strip()
    for pattern in (HTTPS_RE, SSH_RE):
        match = pattern.match(url)
        if match:
            return RepoIdentity(owner=match.group(1), repo=match.group(2))
    return None


def get_remote_url(repo: Path, remote: str = "origin") -> str | None:
    """Get the URL of a remote, or None if it isn't configured."""
    result = run_git(["config", "--get", f"remote.{remote}.url"], repo)
    if result.success:
        return result.output or None
    return None


def detect_repo(repo: Path, remote: str = "origin") -> RepoIdentity | None:
    """Detect the GitHub repository a working copy points at."""
    return parse_repo_url(get_remote_url(repo, remote) or "")
