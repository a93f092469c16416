"""
Per-polecat name locks.

Serializes lifecycle transitions (replace → create → assign) for one
(rig, polecat) pair across concurrent gt invocations. The lock is an
exclusive fcntl.flock on <rig>/.gastown/locks/<name>.lock.
"""

import fcntl
import logging
import time
from pathlib import Path
from typing import IO, Optional

from gastown.errors import PolecatBusyError

logger = logging.getLogger(__name__)

LOCKS_DIR = Path(".gastown") / "locks"


class NameLock:
    """Exclusive lock on a polecat name, usable as a context manager."""

    def __init__(self, rig_path: Path, name: str, timeout: float = 10.0, poll_interval: float = 0.05):
        self.path = Path(rig_path) / LOCKS_DIR / f"{name}.lock"
        self.name = name
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._file: Optional[IO[str]] = None

    def acquire(self) -> None:
        """
        Raises:
            PolecatBusyError: If another process holds the lock past the timeout
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        f = open(self.path, 'a')
        start_time = time.monotonic()
        while True:
            try:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() - start_time >= self.timeout:
                    f.close()
                    raise PolecatBusyError(self.name)
                time.sleep(self.poll_interval)

        logger.debug("acquired name lock %s", self.path)
        self._file = f

    def release(self) -> None:
        if self._file is None:
            return
        try:
            fcntl.flock(self._file.fileno(), fcntl.LOCK_UN)
        finally:
            self._file.close()
            self._file = None
        logger.debug("released name lock %s", self.path)

    def __enter__(self) -> "NameLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
