"""Spawn failure telemetry for gt.

Every aborted spawn appends one JSON line to ~/.gastown/errors.jsonl:

{
    "timestamp": "2026-10-18T10:42:00Z",
    "command": "gt spawn gastown/Nux --issue gt-def",
    "error_type": "POLECAT_BUSY",
    "step": "lifecycle",
    "address": "gastown/Nux",
    "message": "polecat 'Nux' is already working on gt-abc",
    "duration_ms": 45
}

The file keeps the newest MAX_ENTRIES lines.
"""

import json
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional


class ErrorType(Enum):
    """Failure classes a spawn can end in."""

    INVALID_ADDRESS = "INVALID_ADDRESS"
    MISSING_ASSIGNMENT = "MISSING_ASSIGNMENT"
    TOWN_NOT_FOUND = "TOWN_NOT_FOUND"
    RIG_NOT_FOUND = "RIG_NOT_FOUND"
    POLECAT_BUSY = "POLECAT_BUSY"
    POLECAT_LIFECYCLE = "POLECAT_LIFECYCLE"
    ISSUE_NOT_FOUND = "ISSUE_NOT_FOUND"
    ISSUE_FETCH_FAILED = "ISSUE_FETCH_FAILED"
    ISSUE_PARSE_FAILED = "ISSUE_PARSE_FAILED"
    ASSIGNMENT_FAILED = "ASSIGNMENT_FAILED"
    SESSION_START_FAILED = "SESSION_START_FAILED"
    SESSION_INJECTION_FAILED = "SESSION_INJECTION_FAILED"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


@dataclass
class SpawnFailure:
    """One failed spawn, as stored in errors.jsonl."""

    timestamp: str
    command: str
    error_type: ErrorType
    step: str
    address: str
    message: str
    duration_ms: Optional[int] = None

    @classmethod
    def from_error(
        cls,
        error: Exception,
        command: str,
        address: str,
        duration_ms: Optional[int] = None,
    ) -> "SpawnFailure":
        """Build a record from a SpawnError; other exceptions count as UNEXPECTED_ERROR."""
        return cls(
            timestamp=datetime.now().isoformat() + "Z",
            command=command,
            error_type=getattr(error, "error_type", ErrorType.UNEXPECTED_ERROR),
            step=getattr(error, "step", "spawn"),
            address=address,
            message=str(error),
            duration_ms=duration_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["error_type"] = self.error_type.value
        if self.duration_ms is None:
            del data["duration_ms"]
        return data


class ErrorLogger:
    """Appends SpawnFailure records to a JSONL file and trims it."""

    MAX_ENTRIES = 10000

    def __init__(self, error_file: Optional[Path] = None, max_entries: int = MAX_ENTRIES):
        if error_file is None:
            error_file = Path.home() / ".gastown" / "errors.jsonl"

        self.error_file = Path(error_file)
        self.max_entries = max_entries
        self.error_file.parent.mkdir(parents=True, exist_ok=True)

    def record(self, failure: SpawnFailure) -> None:
        with open(self.error_file, "a") as f:
            f.write(json.dumps(failure.to_dict()) + "\n")
        self._trim()

    def _trim(self) -> None:
        lines = self.error_file.read_text().splitlines()
        if len(lines) > self.max_entries:
            self.error_file.write_text("\n".join(lines[-self.max_entries:]) + "\n")


_default_logger: Optional[ErrorLogger] = None


def _get_default_logger() -> ErrorLogger:
    global _default_logger
    if _default_logger is None:
        _default_logger = ErrorLogger()
    return _default_logger


def record_spawn_failure(
    error: Exception,
    command: str,
    address: str,
    duration_ms: Optional[int] = None,
) -> SpawnFailure:
    """Record a failed spawn in ~/.gastown/errors.jsonl and return the record."""
    failure = SpawnFailure.from_error(error, command, address, duration_ms)
    _get_default_logger().record(failure)
    return failure


def reset_default_logger() -> None:
    """Forget the default logger so the next call re-reads HOME (for testing)."""
    global _default_logger
    _default_logger = None
