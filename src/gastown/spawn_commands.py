"""Spawn commands for gt CLI.

Commands for spawning polecats with work assignments.
"""

import sys
import time

import click

from gastown.error_logging import record_spawn_failure
from gastown.errors import SpawnError


def register_spawn_commands(cli):
    """Register spawn-related commands with the CLI."""

    @cli.command()
    @click.argument('address')
    @click.option('--issue', 'issue_id', help='Beads issue ID to assign')
    @click.option('--message', '-m', help='Free-form task description')
    @click.option('--no-start', is_flag=True, help="Assign work but don't start session")
    def spawn(address, issue_id, message, no_start):
        """
        Spawn a polecat with a work assignment.

        Creates a fresh polecat worktree, assigns an issue or task, and starts
        a session. Polecats are ephemeral - they exist only while working.

        If no polecat name is specified, generates a random name. If the specified
        name already exists as a non-working polecat, it will be replaced with
        a fresh worktree.

        \b
        Examples:
          gt spawn gastown --issue gt-abc          # auto-generate polecat name
          gt spawn gastown/Toast --issue gt-def    # use specific name
          gt spawn gastown/Nux -m "Fix the tests"  # free-form task
        """
        from gastown.spawn import SpawnRequest, spawn_polecat

        start_time = time.time()
        request = SpawnRequest(
            address=address,
            issue_id=issue_id or None,
            message=message or None,
            no_start=no_start,
        )

        try:
            spawn_polecat(request)
        except SpawnError as e:
            record_spawn_failure(
                e,
                command="gt " + " ".join(sys.argv[1:]),
                address=address,
                duration_ms=int((time.time() - start_time) * 1000),
            )
            click.echo(f"❌ {e}", err=True)
            raise click.Abort()

    cli.add_command(spawn, name='sp')
