"""Git operations for Powerlevel.

Return type conventions:
- Functions returning GitResult: Caller must check .success before using output.
- Functions returning parsed values (list, identity): Return empty/None on failure.
"""

from powerlevel.git.runner import run_git, GitResult
from powerlevel.git.log import Commit, get_commits_since
from powerlevel.git.remote import (
    RepoIdentity,
    parse_repo_url,
    get_remote_url,
    detect_repo,
)

__all__ = [
    # runner
    "run_git",
    "GitResult",
    # log
    "Commit",
    "get_commits_since",
    # remote
    "RepoIdentity",
    "parse_repo_url",
    "get_remote_url",
    "detect_repo",
]
