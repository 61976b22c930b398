"""
Cache store: load and save tracking state per repository.

Layout:
  <cache_root>/<repo hash>/state.json   the Cache document
  <cache_root>/<repo hash>/state.lock   flock target for single-writer access

A missing or corrupt state.json loads as an empty cache. Failing to save
always raises; losing a write would lose a cleared dirty flag.
"""

import fcntl
import json
import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path

from powerlevel.lib.errors import ValidationError
from powerlevel.lib.validate import validate, validate_before_write
from powerlevel.tracking.models import Cache

logger = logging.getLogger(__name__)

CACHE_DIR_ENV = "POWERLEVEL_CACHE_DIR"
STATE_FILENAME = "state.json"
LOCK_FILENAME = "state.lock"


class LockTimeout(Exception):
    """Lock acquisition timed out."""
    pass


def get_cache_root() -> Path:
    """Cache root from $POWERLEVEL_CACHE_DIR, else ~/.cache/powerlevel."""
    override = os.environ.get(CACHE_DIR_ENV)
    if override:
        return Path(override)
    return Path.home() / ".cache" / "powerlevel"


class CacheStore:
    """Reads and writes Cache documents, one directory per repository hash.

    Identities are the opaque hash strings from RepoIdentity.hash.
    """

    def __init__(self, root: Path | None = None):
        self.root = Path(root) if root is not None else get_cache_root()

    def path_for(self, identity: str) -> Path:
        return self.root / identity / STATE_FILENAME

    def load(self, identity: str) -> Cache:
        """Load the cache for a repository, or an empty one if none is usable."""
        path = self.path_for(identity)
        if not path.exists():
            return Cache()

        try:
            data = json.loads(path.read_text())
            validate(data, "cache")
            return Cache.from_dict(data)
        except (OSError, json.JSONDecodeError, ValidationError, KeyError, TypeError) as e:
            logger.warning(f"Cache at {path} is unreadable, starting empty: {e}")
            return Cache()

    def save(self, identity: str, cache: Cache) -> None:
        """Write the whole cache. Raises on any failure."""
        path = self.path_for(identity)
        data = cache.to_dict()
        validate_before_write(data, "cache", path)

        path.parent.mkdir(parents=True, exist_ok=True)
        # Write then rename so a crash never leaves a half-written file
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(data, indent=2) + "\n")
        tmp_path.replace(path)
        logger.debug(f"Saved cache to {path}")

    @contextmanager
    def lock(self, identity: str, timeout: int = 60):
        """
        Hold an exclusive lock for one repository's cache, yield, release on exit.

        Wrap a load-mutate-save cycle in this so concurrent invocations for the
        same repository don't interleave. Different identities never contend.
        """
        lock_file = self.root / identity / LOCK_FILENAME
        lock_file.parent.mkdir(parents=True, exist_ok=True)

        fd = open(lock_file, 'w')
        start = time.time()
        try:
            while True:
                try:
                    fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except BlockingIOError:
                    if time.time() - start > timeout:
                        raise LockTimeout(f"Could not acquire cache lock for {identity} within {timeout}s")
                    time.sleep(0.2)

            fd.write(f"{os.getpid()}\n")
            fd.flush()
            yield
        finally:
            try:
                fcntl.flock(fd, fcntl.LOCK_UN)
            finally:
                fd.close()
