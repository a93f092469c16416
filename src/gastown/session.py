"""
Polecat sessions: tmux sessions running the agent inside a polecat worktree.

SessionManager talks to tmux. SessionOrchestrator decides whether a spawn
starts a new session or reuses a running one, waits for a new session to
become ready, and delivers the initial context.
"""

import logging
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional

from gastown.errors import SessionInjectionError, SessionStartError
from gastown.polecat import POLECATS_DIR
from gastown.rig import Rig
from gastown.tmux_utils import find_session

logger = logging.getLogger(__name__)

# Pane content showing the agent is still loading
LOADING_MARKERS = ("sublimating",)
# Pane content showing the agent prompt is up
READY_MARKERS = ("> try", "─────")


@dataclass
class StartOptions:
    """Options for starting a polecat session. Defaults come from the manager."""
    work_dir: Optional[Path] = None
    command: Optional[str] = None
    env: Dict[str, str] = field(default_factory=dict)


class SessionManager:
    """tmux session management for the polecats of one rig."""

    def __init__(self, rig: Rig, agent_command: str, prefix: str = "gt"):
        self.rig = rig
        self.agent_command = agent_command
        self.prefix = prefix

    def session_name(self, polecat: str) -> str:
        return f"{self.prefix}-{self.rig.name}-{polecat}"

    def is_running(self, polecat: str) -> bool:
        return find_session(self.session_name(polecat)) is not None

    def start(self, polecat: str, options: StartOptions) -> None:
        """
        Create a detached session in the polecat's worktree and launch the agent.

        Raises:
            SessionStartError: If the worktree is missing or tmux fails
        """
        name = self.session_name(polecat)
        work_dir = options.work_dir or (self.rig.path / POLECATS_DIR / polecat)
        if not work_dir.is_dir():
            raise SessionStartError(f"polecat worktree not found: {work_dir}")

        env = {"GT_RIG": self.rig.name, "GT_POLECAT": polecat, **options.env}
        new_session_cmd = ["tmux", "new-session", "-d", "-s", name, "-c", str(work_dir)]
        for key, value in env.items():
            new_session_cmd.extend(["-e", f"{key}={value}"])

        self._tmux(new_session_cmd, SessionStartError, f"creating session {name}")
        self._tmux(
            ["tmux", "send-keys", "-t", name, options.command or self.agent_command, "Enter"],
            SessionStartError,
            f"launching agent in {name}",
        )

    def is_ready(self, polecat: str) -> bool:
        """Check whether the agent prompt is showing in the session's pane."""
        try:
            result = subprocess.run(
                ["tmux", "capture-pane", "-p", "-t", self.session_name(polecat)],
                capture_output=True,
                text=True,
                timeout=1.0,
            )
        except (subprocess.SubprocessError, OSError):
            return False

        if result.returncode != 0:
            return False

        output_lower = result.stdout.lower()
        if any(marker in output_lower for marker in LOADING_MARKERS):
            return False
        return any(marker in output_lower for marker in READY_MARKERS)

    def inject(self, polecat: str, message: str) -> None:
        """
        Paste a message into the session and submit it.

        Uses a named paste buffer so multi-line messages arrive as one
        bracketed paste instead of one line per Enter.

        Raises:
            SessionInjectionError: If any tmux step fails
        """
        name = self.session_name(polecat)
        buffer_name = f"{name}-spawn"
        self._tmux(
            ["tmux", "load-buffer", "-b", buffer_name, "-"],
            SessionInjectionError,
            f"loading context for {name}",
            input=message,
        )
        self._tmux(
            ["tmux", "paste-buffer", "-p", "-d", "-b", buffer_name, "-t", name],
            SessionInjectionError,
            f"pasting context into {name}",
        )
        self._tmux(
            ["tmux", "send-keys", "-t", name, "Enter"],
            SessionInjectionError,
            f"submitting context in {name}",
        )

    def _tmux(self, cmd, error_cls, action: str, input: Optional[str] = None) -> None:
        logger.debug("running %s", cmd)
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, input=input)
        except FileNotFoundError:
            raise error_cls(f"{action}: tmux not found")
        if result.returncode != 0:
            detail = result.stderr.strip() or f"exit status {result.returncode}"
            raise error_cls(f"{action}: {detail}")


class SessionOrchestrator:
    """Start-or-reuse a polecat session, then deliver its initial context."""

    def __init__(
        self,
        sessions: SessionManager,
        ready_timeout: float = 15.0,
        poll_interval: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.sessions = sessions
        self.ready_timeout = ready_timeout
        self.poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep

    def ensure_started(self, polecat: str) -> bool:
        """
        Start the polecat's session unless it's already running.

        Returns:
            True if a new session was started, False if a running one is reused

        Raises:
            SessionStartError: If starting fails or the session never becomes ready
        """
        if self.sessions.is_running(polecat):
            logger.info("session for %s already running, reusing it", polecat)
            return False

        self.sessions.start(polecat, StartOptions())
        self.wait_until_ready(polecat)
        return True

    def wait_until_ready(self, polecat: str) -> None:
        """
        Poll until the session shows its prompt, bounded by ready_timeout.

        Raises:
            SessionStartError: If the session exits or the timeout expires
        """
        deadline = self._clock() + self.ready_timeout
        while True:
            if not self.sessions.is_running(polecat):
                raise SessionStartError(
                    f"session for {polecat} exited during startup; the agent may have crashed"
                )
            if self.sessions.is_ready(polecat):
                return
            if self._clock() >= deadline:
                raise SessionStartError(
                    f"session for {polecat} not ready after {self.ready_timeout:g}s "
                    f"(set GT_SPAWN_TIMEOUT to wait longer)"
                )
            self._sleep(self.poll_interval)

    def deliver(self, polecat: str, context: str) -> None:
        self.sessions.inject(polecat, context)

    def start_and_deliver(
        self,
        polecat: str,
        context: str,
        on_started: Optional[Callable[[bool], None]] = None,
    ) -> bool:
        """
        Run start-or-reuse followed by delivery.

        on_started, if given, is called with the started flag once the session
        is up and before the context is injected.

        Returns:
            True if a new session was started, False if a running one was reused
        """
        started = self.ensure_started(polecat)
        if on_started is not None:
            on_started(started)
        self.deliver(polecat, context)
        return started
