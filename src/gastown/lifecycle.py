"""
Polecat lifecycle state machine.

Polecats are ephemeral: every spawn onto a name hands out a fresh worktree
from the rig's main line, except when the polecat is still working, in which
case the spawn is refused and nothing is touched.

    ABSENT  --create-->        IDLE
    IDLE    --prepare-->       IDLE     (old worktree force-removed, fresh one created)
    WORKING --prepare-->       PolecatBusyError, no change
    IDLE    --assign_work-->   WORKING
"""

import logging
from contextlib import AbstractContextManager
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from gastown.errors import (
    AssignmentError,
    PolecatBusyError,
    PolecatLifecycleError,
    PolecatNotFoundError,
)
from gastown.locking import NameLock
from gastown.polecat import Polecat, PolecatManager, PolecatManagerError

logger = logging.getLogger(__name__)


class LifecycleState(Enum):
    ABSENT = "absent"
    IDLE = "idle"
    WORKING = "working"


@dataclass
class PrepareResult:
    polecat: Polecat
    replaced: bool = False


class PolecatLifecycle:
    """Enforces create / replace / busy-protection for polecats of one rig."""

    def __init__(
        self,
        manager: PolecatManager,
        lock_factory: Optional[Callable[[str], AbstractContextManager]] = None,
        lock_timeout: float = 10.0,
    ):
        self.manager = manager
        if lock_factory is None:
            def lock_factory(name: str) -> AbstractContextManager:
                return NameLock(manager.rig.path, name, timeout=lock_timeout)
        self._lock_factory = lock_factory

    def locked(self, name: str) -> AbstractContextManager:
        """Exclusive lock for a polecat name, held across prepare and assign_work."""
        return self._lock_factory(name)

    def known_names(self) -> List[str]:
        try:
            return [p.name for p in self.manager.list()]
        except (PolecatManagerError, OSError, ValueError) as e:
            raise PolecatLifecycleError("listing", "*", e) from e

    def state(self, name: str) -> LifecycleState:
        return self._lookup(name)[0]

    def _lookup(self, name: str) -> Tuple[LifecycleState, Optional[Polecat]]:
        try:
            polecat = self.manager.get(name)
        except PolecatNotFoundError:
            return LifecycleState.ABSENT, None
        except (PolecatManagerError, OSError, ValueError) as e:
            raise PolecatLifecycleError("checking", name, e) from e
        if polecat.is_working:
            return LifecycleState.WORKING, polecat
        return LifecycleState.IDLE, polecat

    def create(self, name: str) -> Polecat:
        try:
            return self.manager.add(name)
        except (PolecatManagerError, OSError) as e:
            raise PolecatLifecycleError("creating", name, e) from e

    def prepare(self, name: str) -> PrepareResult:
        """
        Bring a polecat name to IDLE with a fresh worktree.

        Raises:
            PolecatBusyError: If the polecat is working (nothing is changed)
            PolecatLifecycleError: If removing or creating the worktree fails
        """
        current, existing = self._lookup(name)

        if current is LifecycleState.ABSENT:
            return PrepareResult(polecat=self.create(name))

        if current is LifecycleState.WORKING:
            raise PolecatBusyError(name, existing.issue)

        logger.info("replacing stale polecat %s with a fresh worktree", name)
        try:
            self.manager.remove(name, force=True)
        except (PolecatManagerError, PolecatNotFoundError, OSError) as e:
            raise PolecatLifecycleError("removing stale", name, e) from e

        return PrepareResult(polecat=self.create(name), replaced=True)

    def assign_work(self, name: str, assignment_id: str) -> Polecat:
        """
        Attach an assignment and move the polecat to WORKING.

        Raises:
            PolecatNotFoundError: If the name has no record
            AssignmentError: If the record can't be updated
        """
        try:
            return self.manager.assign_issue(name, assignment_id)
        except PolecatNotFoundError:
            raise
        except (PolecatManagerError, OSError) as e:
            raise AssignmentError(f"assigning {assignment_id} to polecat '{name}': {e}") from e
