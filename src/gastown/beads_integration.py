"""Beads issue tracker integration for gt spawn.

Provides the IssueClient interface the spawn flow depends on, and
BeadsIntegration, its production implementation wrapping the `bd` CLI.
"""

import json
import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from gastown.error_logging import ErrorType
from gastown.errors import SpawnError

logger = logging.getLogger(__name__)


class IssueError(SpawnError):
    """Base class for issue tracker failures."""

    step = "issue"


class IssueNotFoundError(IssueError):
    """Raised when the tracker returns no record for an issue id."""

    error_type = ErrorType.ISSUE_NOT_FOUND

    def __init__(self, issue_id: str):
        self.issue_id = issue_id
        super().__init__(f"issue not found: {issue_id}")


class IssueFetchError(IssueError):
    """Raised when the tracker command itself fails."""

    error_type = ErrorType.ISSUE_FETCH_FAILED

    def __init__(self, issue_id: str, detail: str):
        self.issue_id = issue_id
        self.detail = detail
        super().__init__(f"fetching issue {issue_id}: {detail}")


class IssueParseError(IssueError):
    """Raised when tracker output can't be decoded into issue records."""

    error_type = ErrorType.ISSUE_PARSE_FAILED

    def __init__(self, issue_id: str, detail: str):
        self.issue_id = issue_id
        self.detail = detail
        super().__init__(f"parsing issue {issue_id}: {detail}")


class BeadsInitError(Exception):
    """Raised when `bd init` fails inside a worktree."""


@dataclass
class BeadsIssue:
    """Represents a beads issue (read-only copy)."""

    id: str
    title: str
    description: str
    priority: int
    issue_type: str
    status: str

    @classmethod
    def from_dict(cls, data: dict) -> "BeadsIssue":
        """Build an issue from one element of `bd show --json` output.

        Raises:
            TypeError, ValueError: If the record doesn't have the expected shape
        """
        if not isinstance(data, dict):
            raise TypeError(f"expected issue object, got {type(data).__name__}")
        if "id" not in data:
            raise ValueError("issue record has no 'id'")
        priority = data.get("priority", 0)
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise ValueError(f"priority must be an integer, got {priority!r}")
        return cls(
            id=str(data["id"]),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            priority=priority,
            issue_type=str(data.get("issue_type") or ""),
            status=str(data.get("status") or ""),
        )


class IssueClient(ABC):
    """Interface to the issue/task tracker used while spawning polecats."""

    @abstractmethod
    def fetch_issue(self, rig_path: Path, issue_id: str) -> BeadsIssue:
        """
        Fetch an issue from the tracker scoped to a rig.

        Raises:
            IssueNotFoundError: If the tracker has no such issue
            IssueFetchError: If the tracker query fails
            IssueParseError: If the tracker output is malformed
        """

    @abstractmethod
    def init_worktree(self, worktree_path: Path) -> None:
        """
        Initialize tracker state inside a freshly created worktree.

        Raises:
            BeadsInitError: If initialization fails
        """


def _stderr_or(result: subprocess.CompletedProcess, fallback: str) -> str:
    detail = (result.stderr or "").strip()
    return detail if detail else fallback


class BeadsIntegration(IssueClient):
    """Wrapper around the beads (bd) CLI."""

    def __init__(self, cli_path: str = "bd"):
        """
        Args:
            cli_path: Path to the bd CLI executable. Defaults to "bd".
        """
        self.cli_path = cli_path

    def _run(self, args: list, cwd: Union[str, Path]) -> subprocess.CompletedProcess:
        cmd = [self.cli_path, *args]
        logger.debug("running %s in %s", cmd, cwd)
        return subprocess.run(cmd, cwd=str(cwd), capture_output=True, text=True)

    def fetch_issue(self, rig_path: Path, issue_id: str) -> BeadsIssue:
        """Get a beads issue via `bd show <id> --json` run inside the rig.

        bd show --json returns an array; the first element is used.
        """
        try:
            result = self._run(["show", issue_id, "--json"], cwd=rig_path)
        except FileNotFoundError:
            raise IssueFetchError(issue_id, f"{self.cli_path} CLI not found. Install beads or check PATH.")

        if result.returncode != 0:
            raise IssueFetchError(issue_id, _stderr_or(result, f"exit status {result.returncode}"))

        try:
            issues = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise IssueParseError(issue_id, str(e))

        if not isinstance(issues, list):
            raise IssueParseError(issue_id, f"expected a JSON array, got {type(issues).__name__}")
        if not issues:
            raise IssueNotFoundError(issue_id)

        try:
            return BeadsIssue.from_dict(issues[0])
        except (TypeError, ValueError) as e:
            raise IssueParseError(issue_id, str(e))

    def init_worktree(self, worktree_path: Path) -> None:
        """Run `bd init` inside a new polecat worktree."""
        try:
            result = self._run(["init"], cwd=worktree_path)
        except FileNotFoundError:
            raise BeadsInitError(f"{self.cli_path} CLI not found")

        if result.returncode != 0:
            raise BeadsInitError(_stderr_or(result, f"exit status {result.returncode}"))
