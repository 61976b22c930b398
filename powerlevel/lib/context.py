"""
Per-invocation repository context for CLI commands.

Bundles what every command needs to touch one repository's cache: where the
working copy is, which GitHub repository it maps to, the loaded config, the
cache store and a gh client.
"""

from dataclasses import dataclass
from pathlib import Path

from powerlevel.git.remote import RepoIdentity, detect_repo
from powerlevel.lib.config import Config, load_config
from powerlevel.lib.errors import ValidationError
from powerlevel.lib.github import GitHubClient
from powerlevel.tracking.cache import CacheStore

__all__ = ["RepoContext", "resolve_context"]


@dataclass
class RepoContext:
    repo_path: Path
    identity: RepoIdentity
    config: Config
    store: CacheStore
    client: GitHubClient

    @property
    def cache_key(self) -> str:
        return self.identity.hash


def resolve_context(
    repo_path: Path,
    repo: str | None = None,
    cache_dir: Path | None = None,
) -> RepoContext:
    """
    Build the context for a working copy.

    Args:
        repo_path: Working copy root
        repo: Explicit "owner/repo", otherwise taken from the origin remote
        cache_dir: Cache root override

    Raises:
        ValidationError: repository can't be determined or config is invalid
    """
    if repo:
        try:
            identity = RepoIdentity.parse(repo)
        except ValueError as e:
            raise ValidationError(str(e)) from None
    else:
        identity = detect_repo(repo_path)
        if identity is None:
            raise ValidationError(
                f"Could not detect a GitHub repository for {repo_path}\n"
                f"  Set an 'origin' remote or pass --repo owner/repo"
            )

    config = load_config(repo_path)
    return RepoContext(
        repo_path=repo_path,
        identity=identity,
        config=config,
        store=CacheStore(cache_dir),
        client=GitHubClient(identity.full_name),
    )
