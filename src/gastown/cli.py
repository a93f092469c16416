import click

from gastown import __version__

from gastown.spawn_commands import register_spawn_commands
from gastown.polecat_commands import register_polecat_commands


@click.group()
@click.version_option(version=__version__, prog_name="gt")
def cli():
    """Gas Town: spawn and manage polecats across rigs."""
    pass


register_spawn_commands(cli)
register_polecat_commands(cli)


if __name__ == '__main__':
    cli()
