"""Git history queries."""

from dataclasses import dataclass
from pathlib import Path

from powerlevel.git.runner import run_git

# Unit separator keeps commit subjects containing "|" intact
FIELD_SEP = "\x1f"
LOG_FORMAT = f"%H{FIELD_SEP}%s{FIELD_SEP}%cI"


@dataclass
class Commit:
    hash: str
    message: str  # Subject line
    timestamp: str  # Committer date, ISO 8601

    @property
    def short_hash(self) -> str:
        return self.hash[:7]


def get_commits_since(repo: Path, since: str) -> list[Commit]:
    """
    Get commits made since a timestamp, oldest first.

    Args:
        repo: Path to the working copy
        since: Anything `git log --since` accepts (ISO timestamp in practice)

    Returns:
        List of commits, or [] on any git error (not a repo, timeout, no git)
    """
    if not since:
        return []

    result = run_git(
        ["log", f"--since={since}", "--reverse", f"--format={LOG_FORMAT}"],
        repo,
    )
    if not result.success:
        return []

    commits = []
    for line in result.stdout.splitlines():
        parts = line.split(FIELD_SEP)
        if len(parts) != 3:
            continue
        commit_hash, message, timestamp = (p.strip() for p in parts)
        if commit_hash:
            commits.append(Commit(hash=commit_hash, message=message, timestamp=timestamp))
    return commits
