"""
CLI commands for inspecting polecats.
"""
import click
from rich.console import Console
from rich.table import Table

from gastown.errors import SpawnError


def register_polecat_commands(cli):
    """Register polecat commands with the CLI."""

    @cli.group()
    def polecat():
        """Inspect polecats in a rig."""
        pass

    @polecat.command('list')
    @click.argument('rig_name')
    def list_polecats(rig_name: str):
        """List polecats in RIG_NAME with their state and assignment."""
        from gastown.config import get_lock_timeout
        from gastown.polecat import PolecatManager
        from gastown.rig import RigManager, find_town_root

        console = Console()

        try:
            rig = RigManager(find_town_root()).get_rig(rig_name)
        except SpawnError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise SystemExit(1)

        polecats = PolecatManager(rig, lock_timeout=get_lock_timeout()).list()
        if not polecats:
            console.print(f"No polecats in {rig_name}")
            return

        table = Table(title=f"Polecats in {rig_name}")
        table.add_column("Name", style="bold", no_wrap=True)
        table.add_column("State", no_wrap=True)
        table.add_column("Assignment", no_wrap=True)
        table.add_column("Worktree", style="dim")

        for pc in sorted(polecats, key=lambda p: p.name):
            state_style = "green" if pc.is_working else "yellow"
            table.add_row(
                pc.name,
                f"[{state_style}]{pc.state.value}[/{state_style}]",
                pc.issue or "-",
                str(pc.clone_path),
            )

        console.print(table)
