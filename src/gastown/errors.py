"""Exception taxonomy for polecat spawning.

Every failure surfaced by `gt spawn` derives from SpawnError, which records the
step that failed and the ErrorType used for telemetry. Issue-tracker errors
live in gastown.beads_integration next to the client that raises them.
"""

from typing import Optional

from gastown.error_logging import ErrorType


class SpawnError(Exception):
    """Base class for every error that aborts a spawn."""

    step = "spawn"
    error_type = ErrorType.UNEXPECTED_ERROR


class InvalidAddressError(SpawnError):
    """Raised when a spawn address is malformed (e.g. '/Toast')."""

    step = "address"
    error_type = ErrorType.INVALID_ADDRESS

    def __init__(self, address: str, reason: str = "missing rig name"):
        self.address = address
        super().__init__(f"invalid address '{address}': {reason}")


class MissingAssignmentError(SpawnError):
    """Raised when neither an issue nor a task message was given."""

    step = "validate"
    error_type = ErrorType.MISSING_ASSIGNMENT

    def __init__(self, message: str = "must specify --issue or -m/--message"):
        super().__init__(message)


class TownNotFoundError(SpawnError):
    """Raised when no Gas Town workspace encloses the working directory."""

    step = "workspace"
    error_type = ErrorType.TOWN_NOT_FOUND

    def __init__(self, start: str):
        self.start = start
        super().__init__(f"not in a Gas Town workspace (searched up from {start})")


class RigNotFoundError(SpawnError):
    """Raised when a rig name is not registered in the town."""

    step = "rig"
    error_type = ErrorType.RIG_NOT_FOUND

    def __init__(self, rig_name: str):
        self.rig_name = rig_name
        super().__init__(f"rig '{rig_name}' not found")


class PolecatBusyError(SpawnError):
    """Raised when a spawn targets a polecat that is already working."""

    step = "lifecycle"
    error_type = ErrorType.POLECAT_BUSY

    def __init__(self, name: str, issue: Optional[str] = None):
        self.name = name
        self.issue = issue
        if issue:
            message = f"polecat '{name}' is already working on {issue}"
        else:
            message = f"polecat '{name}' is busy: another spawn is in progress"
        super().__init__(message)


class PolecatLifecycleError(SpawnError):
    """Raised when creating or removing a polecat worktree fails."""

    step = "lifecycle"
    error_type = ErrorType.POLECAT_LIFECYCLE

    def __init__(self, operation: str, name: str, cause: Exception):
        self.operation = operation
        self.name = name
        self.cause = cause
        super().__init__(f"{operation} polecat '{name}': {cause}")


class AssignmentError(SpawnError):
    """Raised when a work assignment cannot be attached to a polecat."""

    step = "assign"
    error_type = ErrorType.ASSIGNMENT_FAILED


class PolecatNotFoundError(AssignmentError):
    """Raised when a polecat name does not resolve to a record."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"polecat '{name}' not found")


class SessionStartError(SpawnError):
    """Raised when a polecat session cannot be started or never becomes ready."""

    step = "session"
    error_type = ErrorType.SESSION_START_FAILED


class SessionInjectionError(SpawnError):
    """Raised when the initial context cannot be delivered to a session."""

    step = "inject"
    error_type = ErrorType.SESSION_INJECTION_FAILED
