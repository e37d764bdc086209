"""Moir CLI — entry point for the journal commands."""

import click

from moir import __version__


@click.group()
@click.version_option(version=__version__, package_name="moir")
def main() -> None:
    """Moir — a quiet place to write."""


# Register subcommands (lazy imports inside each keep startup fast)
from .auth_cmd import login, profile, register
from .dump_cmd import dump
from .entry_cmd import delete, edit, show, write
from .init_cmd import init
from .notebook_cmd import notebooks
from .view_cmd import calendar, dashboard, reflect, search

main.add_command(init)
main.add_command(login)
main.add_command(register)
main.add_command(profile)
main.add_command(dashboard)
main.add_command(notebooks)
main.add_command(write)
main.add_command(edit)
main.add_command(show)
main.add_command(delete)
main.add_command(calendar)
main.add_command(search)
main.add_command(reflect)
main.add_command(dump)
