"""
Spawning functionality for gt.

Spawns a polecat with a work assignment:
1. Validate that an issue or task message was given
2. Resolve the rig and the polecat name (generated if omitted)
3. Hand out a fresh worktree (refusing if the polecat is still working)
4. Fetch the issue and attach the assignment
5. Start or reuse the polecat's session and inject the initial context

Steps 3-4 run under a per-polecat name lock. Nothing is rolled back on
failure: a fresh worktree left behind is idle and gets replaced by the next
spawn onto that name.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

import click

from gastown.address import parse_spawn_address
from gastown.beads_integration import BeadsInitError, BeadsIntegration, BeadsIssue, IssueClient
from gastown.config import (
    get_agent_command,
    get_beads_cli,
    get_lock_timeout,
    get_session_poll_interval,
    get_session_prefix,
    get_session_ready_timeout,
)
from gastown.context import build_spawn_context
from gastown.errors import MissingAssignmentError, SpawnError
from gastown.lifecycle import PolecatLifecycle
from gastown.logging import GastownLogger
from gastown.naming import NameGenerator
from gastown.polecat import PolecatManager
from gastown.rig import Rig, RigManager, find_town_root
from gastown.session import SessionManager, SessionOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class SpawnRequest:
    """What to spawn, as given on the command line."""
    address: str
    issue_id: Optional[str] = None
    message: Optional[str] = None
    no_start: bool = False


@dataclass
class SpawnResult:
    rig: str
    polecat: str
    assignment_id: str
    replaced: bool = False
    # None when --no-start; otherwise True if a new session was started
    session_started: Optional[bool] = None
    context: Optional[str] = None


def task_assignment_id(now: Optional[datetime] = None) -> str:
    """Synthetic assignment id for free-form tasks, e.g. task:20261018-142233."""
    now = now or datetime.now()
    return "task:" + now.strftime("%Y%m%d-%H%M%S")


def _default_session_manager(rig: Rig) -> SessionManager:
    return SessionManager(rig, agent_command=get_agent_command(), prefix=get_session_prefix())


class Spawner:
    """Wires the spawn steps together. Collaborators are injectable for testing."""

    def __init__(
        self,
        town_root: Optional[Path] = None,
        issue_client: Optional[IssueClient] = None,
        name_generator: Optional[NameGenerator] = None,
        manager_factory: Callable[..., PolecatManager] = PolecatManager,
        session_manager_factory: Callable[[Rig], SessionManager] = _default_session_manager,
        orchestrator_factory: Optional[Callable[[SessionManager], SessionOrchestrator]] = None,
        gastown_logger: Optional[GastownLogger] = None,
    ):
        self.town_root = town_root
        self.issue_client = issue_client or BeadsIntegration(cli_path=get_beads_cli())
        self.name_generator = name_generator or NameGenerator()
        self.manager_factory = manager_factory
        self.session_manager_factory = session_manager_factory
        self.orchestrator_factory = orchestrator_factory or (
            lambda sessions: SessionOrchestrator(
                sessions,
                ready_timeout=get_session_ready_timeout(),
                poll_interval=get_session_poll_interval(),
            )
        )
        self.gastown_logger = gastown_logger or GastownLogger()

    def spawn(self, request: SpawnRequest) -> SpawnResult:
        """
        Spawn a polecat for the request.

        Raises:
            SpawnError: Any step failing aborts the spawn (see gastown.errors)
        """
        start_time = time.time()
        self.gastown_logger.spawn_started(
            request.address,
            issue_id=request.issue_id,
            message=request.message,
            no_start=request.no_start,
        )

        try:
            result = self._spawn(request)
        except SpawnError as e:
            duration_ms = int((time.time() - start_time) * 1000)
            self.gastown_logger.spawn_failed(request.address, e, duration_ms)
            raise

        duration_ms = int((time.time() - start_time) * 1000)
        self.gastown_logger.spawn_completed(
            result.rig,
            result.polecat,
            result.assignment_id,
            duration_ms,
            replaced=result.replaced,
            session_started=result.session_started,
        )
        return result

    def _spawn(self, request: SpawnRequest) -> SpawnResult:
        # Validated before any side effect
        if not request.issue_id and not request.message:
            raise MissingAssignmentError()

        rig_name, polecat_name = parse_spawn_address(request.address)

        town_root = self.town_root or find_town_root()
        rig = RigManager(town_root).get_rig(rig_name)

        lock_timeout = get_lock_timeout()
        manager = self.manager_factory(rig, lock_timeout=lock_timeout)
        lifecycle = PolecatLifecycle(manager, lock_timeout=lock_timeout)

        if not polecat_name:
            polecat_name = self.name_generator.generate(lifecycle.known_names())
            click.echo(f"Generated polecat name: {polecat_name}")

        issue: Optional[BeadsIssue] = None
        with lifecycle.locked(polecat_name):
            prepared = lifecycle.prepare(polecat_name)
            if prepared.replaced:
                click.echo(f"Replaced stale polecat {polecat_name} with a fresh worktree")
            else:
                click.echo(f"Created fresh polecat {polecat_name}")

            click.echo("Initializing beads in worktree...")
            try:
                self.issue_client.init_worktree(prepared.polecat.clone_path)
            except BeadsInitError as e:
                # Non-fatal: beads may already be initialized in the worktree
                click.echo("  " + click.style(f"(beads init: {e})", dim=True))
                self.gastown_logger.warn("spawn", "beads init failed", {
                    "polecat": polecat_name,
                    "reason": str(e),
                })

            if request.issue_id:
                issue = self.issue_client.fetch_issue(rig.path, request.issue_id)

            assignment_id = request.issue_id or task_assignment_id()
            lifecycle.assign_work(polecat_name, assignment_id)

        click.echo(f"{click.style('✓', bold=True)} Assigned {assignment_id} to {rig_name}/{polecat_name}")

        result = SpawnResult(
            rig=rig_name,
            polecat=polecat_name,
            assignment_id=assignment_id,
            replaced=prepared.replaced,
        )

        if request.no_start:
            click.echo("\n  " + click.style("Use 'gt session start' to start the session", dim=True))
            return result

        sessions = self.session_manager_factory(rig)
        orchestrator = self.orchestrator_factory(sessions)

        def report_session(started: bool) -> None:
            if started:
                click.echo(f"Started session for {rig_name}/{polecat_name}")
            else:
                click.echo("Session already running, injecting context...")
            click.echo("Injecting work assignment...")

        context = build_spawn_context(issue, request.message)
        started = orchestrator.start_and_deliver(polecat_name, context, on_started=report_session)

        attach_hint = click.style(f"gt session at {rig_name}/{polecat_name}", dim=True)
        click.echo(f"{click.style('✓', bold=True)} Session started. Attach with: {attach_hint}")

        result.session_started = started
        result.context = context
        return result


def spawn_polecat(request: SpawnRequest, **kwargs) -> SpawnResult:
    """Spawn a polecat with default collaborators (overridable via kwargs)."""
    return Spawner(**kwargs).spawn(request)
