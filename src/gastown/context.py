"""Initial context message injected into a freshly spawned polecat session."""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from gastown.beads_integration import BeadsIssue

SPAWN_BANNER = "[SPAWN] You have been assigned work."
SPAWN_CLOSING = "Work on this task. When complete, commit your changes and signal DONE."


def build_spawn_context(issue: Optional["BeadsIssue"], message: Optional[str]) -> str:
    """
    Render the work assignment for a polecat.

    The issue takes precedence when both are given. Callers must supply at
    least one of them; with neither, only the banner and closing line are
    rendered.
    """
    lines = [SPAWN_BANNER, ""]

    if issue is not None:
        lines.append(f"Issue: {issue.id}")
        lines.append(f"Title: {issue.title}")
        lines.append(f"Priority: P{issue.priority}")
        lines.append(f"Type: {issue.issue_type}")
        if issue.description:
            lines.extend(["", "Description:", issue.description])
    elif message:
        lines.append(f"Task: {message}")

    lines.extend(["", SPAWN_CLOSING])
    return "\n".join(lines) + "\n"
