"""Spawn activity log for gt.

One line per event, readable on the left and parseable on the right:
    YYYY-MM-DD HH:MM:SS LEVEL [command] message | {"json": "data"}

Files rotate monthly: ~/.gastown/logs/gt-YYYY-MM.log
"""
import json
from pathlib import Path
from datetime import datetime
from typing import Any, Dict, Optional


class GastownLogger:
    """Writes spawn start / completion / failure events to the monthly log."""

    def __init__(self, log_dir: Optional[Path] = None):
        if log_dir is None:
            log_dir = Path.home() / ".gastown" / "logs"

        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def log_path(self, when: Optional[datetime] = None) -> Path:
        when = when or datetime.now()
        return self.log_dir / f"gt-{when:%Y-%m}.log"

    def log_event(
        self,
        command: str,
        message: str,
        data: Dict[str, Any],
        level: str = "INFO",
    ) -> None:
        """Append one event. Non-JSON values (paths, enums) are stringified."""
        now = datetime.now()
        payload = json.dumps(data, ensure_ascii=False, default=str)
        line = f"{now:%Y-%m-%d %H:%M:%S} {level:<5} [{command}] {message} | {payload}\n"
        with open(self.log_path(now), "a") as f:
            f.write(line)

    def spawn_started(
        self,
        address: str,
        issue_id: Optional[str] = None,
        message: Optional[str] = None,
        no_start: bool = False,
    ) -> None:
        assignment = issue_id or ("task" if message else "none")
        self.log_event("spawn", f"Spawning {address} ({assignment})", {
            "address": address,
            "issue": issue_id,
            "message": message,
            "no_start": no_start,
        })

    def spawn_completed(
        self,
        rig: str,
        polecat: str,
        assignment_id: str,
        duration_ms: int,
        replaced: bool = False,
        session_started: Optional[bool] = None,
    ) -> None:
        """Log a finished spawn. session_started is None when no session was requested."""
        if session_started is None:
            session = "not started"
        elif session_started:
            session = "new session"
        else:
            session = "reused session"
        self.log_event(
            "spawn",
            f"Spawned {rig}/{polecat} on {assignment_id}, {session} ({duration_ms}ms)",
            {
                "rig": rig,
                "polecat": polecat,
                "assignment": assignment_id,
                "replaced": replaced,
                "session_started": session_started,
                "duration_ms": duration_ms,
            },
        )

    def spawn_failed(self, address: str, error: Exception, duration_ms: int) -> None:
        """Log an aborted spawn with the step and error type carried by the error."""
        step = getattr(error, "step", "spawn")
        error_type = getattr(error, "error_type", None)
        self.log_event(
            "spawn",
            f"Spawn of {address} failed at {step}: {error}",
            {
                "address": address,
                "step": step,
                "error_type": error_type.value if error_type is not None else None,
                "reason": str(error),
                "duration_ms": duration_ms,
            },
            level="ERROR",
        )

    def warn(self, command: str, message: str, data: Dict[str, Any]) -> None:
        self.log_event(command, message, data, level="WARN")
