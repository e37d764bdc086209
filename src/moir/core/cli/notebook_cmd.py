"""moir notebooks — list, create, edit and delete notebooks."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from .common import async_command, credentials_options, load_config, load_secrets, open_app, signed_in

_COLOR_NAMES = {
    "sage": "#9fb09f",
    "slate": "#64748b",
    "gray": "#94a3b8",
    "earth": "#d4a373",
    "terra": "#e76f51",
    "teal": "#2a9d8f",
}


def _color(value: str) -> str:
    return _COLOR_NAMES.get(value, value)


@click.group()
def notebooks() -> None:
    """Manage notebooks."""


@notebooks.command("list")
@credentials_options
@async_command
async def list_notebooks(email, password) -> None:
    """List your notebooks with their entry counts."""
    from moir.journal.screens import NotebooksScreen

    async with open_app(load_config(), load_secrets(), email, password) as app:
        signed_in(app)
        screen = app.screen(NotebooksScreen)
        summaries = await screen.refresh()
        if not summaries:
            click.echo("No notebooks yet. Create one with 'moir notebooks create NAME'.")
            return
        table = Table(title="Notebooks")
        table.add_column("Id")
        table.add_column("Name")
        table.add_column("Entries", justify="right")
        table.add_column("Digest")
        for s in summaries:
            nb = s.notebook
            table.add_row(nb.id, nb.name, str(s.entry_count), "yes" if nb.include_in_weekly_digest else "")
        Console().print(table)


@notebooks.command()
@credentials_options
@click.argument("name")
@click.option("--description", default="")
@click.option("--color", default="sage", help=f"One of {', '.join(_COLOR_NAMES)} or a palette hex value.")
@click.option("--digest/--no-digest", default=False, help="Include in the weekly reflection.")
@async_command
async def create(email, password, name, description, color, digest) -> None:
    """Create a notebook."""
    from moir.journal.screens import NotebooksScreen

    async with open_app(load_config(), load_secrets(), email, password) as app:
        signed_in(app)
        screen = app.screen(NotebooksScreen)
        notebook_id = await screen.save_notebook(name, description, _color(color), digest)
        click.echo(f"Created notebook {notebook_id}")


@notebooks.command("edit")
@credentials_options
@click.argument("notebook_id")
@click.option("--name", default=None)
@click.option("--description", default=None)
@click.option("--color", default=None)
@click.option("--digest/--no-digest", default=None)
@async_command
async def edit_notebook(email, password, notebook_id, name, description, color, digest) -> None:
    """Change a notebook's name, description, color or digest setting."""
    from moir.journal.screens import NotebooksScreen

    async with open_app(load_config(), load_secrets(), email, password) as app:
        uid = signed_in(app)
        current = await app.accessor.get_notebook(notebook_id, owner_id=uid)
        screen = app.screen(NotebooksScreen)
        await screen.save_notebook(
            name if name is not None else current.name,
            description if description is not None else current.description,
            _color(color) if color is not None else current.color_theme,
            digest if digest is not None else current.include_in_weekly_digest,
            notebook_id=notebook_id,
        )
        click.echo(f"Updated notebook {notebook_id}")


@notebooks.command("delete")
@credentials_options
@click.argument("notebook_id")
@click.option("--yes", is_flag=True, help="Don't ask for confirmation.")
@async_command
async def delete_notebook(email, password, notebook_id, yes) -> None:
    """Delete an empty notebook."""
    from moir.journal.screens import NotebooksScreen

    async with open_app(load_config(), load_secrets(), email, password) as app:
        signed_in(app)
        screen = app.screen(NotebooksScreen)
        await screen.refresh()
        if not yes and not click.confirm(f"Delete notebook {notebook_id}?"):
            click.echo("Kept.")
            return
        await screen.delete_notebook(notebook_id)
        click.echo(f"Deleted notebook {notebook_id}")
