"""
Polecat manager - worktrees and records for a rig's polecats.

Each polecat owns a git worktree at <rig>/polecats/<name> on branch
polecat/<name>. Records live in <rig>/.gastown/polecats.json:

    {"polecats": [{"name": "Nux", "state": "working", "issue": "gt-abc", ...}]}

Uses fcntl file locking around every read and write of the record file.
Note: File locking requires Unix-like systems.
"""

import fcntl
import json
import logging
import subprocess
import time
from contextlib import contextmanager
from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from gastown.errors import PolecatNotFoundError
from gastown.rig import Rig

logger = logging.getLogger(__name__)

POLECATS_DIR = "polecats"
STATE_DIR = ".gastown"
REGISTRY_NAME = "polecats.json"


class PolecatState(str, Enum):
    IDLE = "idle"
    WORKING = "working"


class PolecatManagerError(Exception):
    """Raised when the polecat manager can't complete an operation."""


class GitError(PolecatManagerError):
    """Raised when a git command fails."""

    def __init__(self, args: List[str], detail: str):
        self.git_args = args
        self.detail = detail
        super().__init__(f"git {' '.join(args)}: {detail}")


@dataclass
class Polecat:
    """A polecat record."""
    name: str
    rig: str
    state: PolecatState
    clone_path: Path
    branch: str
    issue: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_working(self) -> bool:
        return self.state == PolecatState.WORKING

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['state'] = self.state.value
        data['clone_path'] = str(self.clone_path)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Polecat":
        return cls(
            name=data['name'],
            rig=data.get('rig', ''),
            state=PolecatState(data.get('state', PolecatState.IDLE.value)),
            clone_path=Path(data['clone_path']),
            branch=data.get('branch', f"polecat/{data['name']}"),
            issue=data.get('issue'),
            created_at=data.get('created_at'),
            updated_at=data.get('updated_at'),
        )


class PolecatManager:
    """
    Manages polecat worktrees and records for one rig.
    """

    def __init__(self, rig: Rig, lock_timeout: float = 10.0):
        self.rig = rig
        self.registry_path = rig.path / STATE_DIR / REGISTRY_NAME
        self._lock_timeout = lock_timeout

    # ------------------------------------------------------------------
    # Record persistence
    # ------------------------------------------------------------------

    def _read_records(self) -> List[Dict[str, Any]]:
        """Read records with a shared lock (allows concurrent reads)."""
        if not self.registry_path.exists():
            return []
        with open(self.registry_path, 'r') as f:
            try:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                content = f.read()
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        if not content.strip():
            return []
        return json.loads(content).get('polecats', [])

    @contextmanager
    def _locked_records(self) -> Iterator[List[Dict[str, Any]]]:
        """Yield the record list under an exclusive lock and write it back."""
        self.registry_path.parent.mkdir(parents=True, exist_ok=True)

        start_time = time.time()
        mode = 'r+' if self.registry_path.exists() else 'w+'
        with open(self.registry_path, mode) as f:
            while True:
                try:
                    fcntl.flock(f.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except BlockingIOError:
                    if time.time() - start_time > self._lock_timeout:
                        raise PolecatManagerError(
                            f"Could not acquire polecat registry lock after {self._lock_timeout}s"
                        )
                    time.sleep(0.01)

            try:
                f.seek(0)
                content = f.read()
                records = json.loads(content).get('polecats', []) if content.strip() else []

                yield records

                f.seek(0)
                f.truncate()
                json.dump({'polecats': records}, f, indent=2)
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

    # ------------------------------------------------------------------
    # Git
    # ------------------------------------------------------------------

    def _git(self, *args: str, cwd: Optional[Path] = None) -> str:
        git_args = list(args)
        logger.debug("git %s (cwd=%s)", " ".join(git_args), cwd or self.rig.path)
        try:
            result = subprocess.run(
                ['git', *git_args],
                cwd=str(cwd or self.rig.path),
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            raise GitError(git_args, "git not found")
        if result.returncode != 0:
            detail = result.stderr.strip() or f"exit status {result.returncode}"
            raise GitError(git_args, detail)
        return result.stdout

    def _is_dirty(self, clone_path: Path) -> bool:
        return bool(self._git('status', '--porcelain', cwd=clone_path).strip())

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def clone_path(self, name: str) -> Path:
        return self.rig.path / POLECATS_DIR / name

    def list(self) -> List[Polecat]:
        return [Polecat.from_dict(r) for r in self._read_records()]

    def get(self, name: str) -> Polecat:
        """
        Raises:
            PolecatNotFoundError: If no record exists for name
        """
        for record in self._read_records():
            if record['name'] == name:
                return Polecat.from_dict(record)
        raise PolecatNotFoundError(name)

    def add(self, name: str) -> Polecat:
        """
        Create a polecat: fresh worktree from the rig's default branch plus an idle record.

        Uses `git worktree add -B` so a leftover polecat/<name> branch is reset
        to the current main line rather than reused.

        Raises:
            PolecatManagerError: If the polecat already exists or its path is occupied
            GitError: If creating the worktree fails
        """
        clone_path = self.clone_path(name)
        branch = f"polecat/{name}"

        with self._locked_records() as records:
            if any(r['name'] == name for r in records):
                raise PolecatManagerError(f"polecat '{name}' already exists")

            self._git('worktree', 'prune')
            if clone_path.exists():
                raise PolecatManagerError(f"worktree path {clone_path} already exists")

            clone_path.parent.mkdir(parents=True, exist_ok=True)
            self._git('worktree', 'add', '-B', branch, str(clone_path), self.rig.default_branch)

            now = datetime.now().isoformat()
            polecat = Polecat(
                name=name,
                rig=self.rig.name,
                state=PolecatState.IDLE,
                clone_path=clone_path,
                branch=branch,
                created_at=now,
                updated_at=now,
            )
            records.append(polecat.to_dict())

        return polecat

    def remove(self, name: str, force: bool = False) -> None:
        """
        Remove a polecat's worktree and record.

        Without force, a worktree with uncommitted changes is left alone.

        Raises:
            PolecatNotFoundError: If no record exists for name
            PolecatManagerError: If the worktree is dirty and force is False
            GitError: If removing the worktree fails
        """
        with self._locked_records() as records:
            record = next((r for r in records if r['name'] == name), None)
            if record is None:
                raise PolecatNotFoundError(name)

            clone_path = Path(record['clone_path'])
            if clone_path.exists():
                if not force and self._is_dirty(clone_path):
                    raise PolecatManagerError(
                        f"polecat '{name}' has uncommitted changes (use force to discard)"
                    )
                remove_args = ['worktree', 'remove']
                if force:
                    remove_args.append('--force')
                remove_args.append(str(clone_path))
                self._git(*remove_args)
            self._git('worktree', 'prune')

            records[:] = [r for r in records if r['name'] != name]

    def assign_issue(self, name: str, issue: str) -> Polecat:
        """
        Attach an assignment id and mark the polecat working.

        Raises:
            PolecatNotFoundError: If no record exists for name
        """
        with self._locked_records() as records:
            record = next((r for r in records if r['name'] == name), None)
            if record is None:
                raise PolecatNotFoundError(name)
            record['issue'] = issue
            record['state'] = PolecatState.WORKING.value
            record['updated_at'] = datetime.now().isoformat()
            return Polecat.from_dict(record)
