"""Runs read-only git queries against a working copy.

Output is parsed by callers, so git runs under the C locale with no pager
or terminal prompts. Failures come back as a GitResult, never an exception.
"""

import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

QUERY_TIMEOUT = 30

QUERY_ENV = {
    "LC_ALL": "C",
    "GIT_PAGER": "cat",
    "GIT_TERMINAL_PROMPT": "0",
}


@dataclass
class GitResult:
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False
    args: list[str] = field(default_factory=list)  # Arguments after "git -C <repo>"

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def output(self) -> str:
        """stdout without surrounding whitespace."""
        return self.stdout.strip()

    def describe_failure(self) -> str:
        command = " ".join(["git"] + self.args)
        reason = self.stderr.strip() or f"exit code {self.returncode}"
        return f"{command}: {reason}"


def query_env() -> dict[str, str]:
    env = dict(os.environ)
    env.update(QUERY_ENV)
    return env


def run_git(args: list[str], cwd: Path, timeout: int = QUERY_TIMEOUT) -> GitResult:
    """
    Run `git -C cwd <args>` and capture its output.

    Args:
        args: Git arguments, e.g. ["log", "--since=..."]
        cwd: Working copy to run in
        timeout: Seconds before the query is abandoned

    Returns:
        GitResult; check .success before reading .stdout
    """
    try:
        completed = subprocess.run(
            ["git", "-C", str(cwd), *args],
            capture_output=True,
            text=True,
            timeout=timeout,
            env=query_env(),
        )
    except subprocess.TimeoutExpired:
        result = GitResult(-1, "", f"timed out after {timeout}s", timed_out=True, args=list(args))
    except OSError as e:
        # No git binary, or cwd vanished
        result = GitResult(-1, "", str(e), args=list(args))
    else:
        result = GitResult(completed.returncode, completed.stdout, completed.stderr, args=list(args))

    if not result.success:
        logger.debug(result.describe_failure())
    return result
