"""moir write / edit / show / delete — single-entry commands."""

from __future__ import annotations

import sys

import click

from .common import async_command, credentials_options, load_config, load_secrets, open_app, signed_in


def _read_content(content: str | None) -> str:
    if content is not None:
        return content
    if not sys.stdin.isatty():
        return sys.stdin.read()
    return click.edit("") or ""


@click.command()
@credentials_options
@click.option("--notebook", "notebook_id", default=None, help="Notebook id (default: your first notebook).")
@click.option("--title", default="")
@click.option("--content", default=None, help="Entry body. Read from stdin or $EDITOR when omitted.")
@click.option("--date", "entry_date", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
@async_command
async def write(email, password, notebook_id, title, content, entry_date) -> None:
    """Write a new entry."""
    from moir.journal import EntryEditor

    async with open_app(load_config(), load_secrets(), email, password) as app:
        uid = signed_in(app)
        editor = EntryEditor(
            app.accessor,
            uid,
            app.settings.editor,
            navigate_replace=lambda path: click.echo(f"Saved: {path}"),
            bus=app.bus,
        )
        try:
            await editor.new(notebook_id, today=entry_date.date() if entry_date else None)
            editor.edit(title=title, content=_read_content(content))
            await editor.save()
            click.echo(f"{editor.word_count} words")
        finally:
            await editor.close()


@click.command()
@credentials_options
@click.argument("entry_id")
@click.option("--title", default=None)
@click.option("--content", default=None)
@click.option("--date", "entry_date", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
@click.option("--notebook", "notebook_id", default=None)
@async_command
async def edit(email, password, entry_id, title, content, entry_date, notebook_id) -> None:
    """Edit an existing entry (opens $EDITOR when no field is given)."""
    from moir.journal import EntryEditor

    async with open_app(load_config(), load_secrets(), email, password) as app:
        uid = signed_in(app)
        editor = EntryEditor(app.accessor, uid, app.settings.editor, bus=app.bus)
        try:
            draft = await editor.load(entry_id)
            changes = {
                k: v
                for k, v in (
                    ("title", title),
                    ("content", content),
                    ("entry_date", entry_date.date() if entry_date else None),
                    ("notebook_id", notebook_id),
                )
                if v is not None
            }
            if not changes:
                edited = click.edit(draft.content)
                if edited is None:
                    click.echo("No changes.")
                    return
                changes["content"] = edited
            editor.edit(**changes)
            await editor.save()
            click.echo(f"Updated {entry_id} ({editor.word_count} words)")
        finally:
            await editor.close()


@click.command()
@credentials_options
@click.argument("entry_id")
@async_command
async def show(email, password, entry_id) -> None:
    """Show one entry."""
    from moir.journal.screens import EntryScreen

    async with open_app(load_config(), load_secrets(), email, password) as app:
        signed_in(app)
        screen = app.screen(EntryScreen)
        entry = await screen.load(entry_id)
        if entry is None:
            raise click.ClickException(f"Entry {entry_id} not found")
        click.echo(entry.title or "Untitled")
        notebook = screen.notebook_name or "No notebook"
        click.echo(f"{entry.entry_date:%A, %B %d, %Y}  ·  {notebook}  ·  {entry.word_count} words")
        click.echo("")
        click.echo(entry.content)


@click.command()
@credentials_options
@click.argument("entry_id")
@click.option("--yes", is_flag=True, help="Don't ask for confirmation.")
@async_command
async def delete(email, password, entry_id, yes) -> None:
    """Delete an entry."""
    from moir.journal.screens import EntryScreen

    async with open_app(load_config(), load_secrets(), email, password) as app:
        signed_in(app)
        screen = app.screen(EntryScreen)
        entry = await screen.load(entry_id)
        if entry is None:
            raise click.ClickException(f"Entry {entry_id} not found")
        if not yes and not click.confirm(f"Delete '{entry.title or 'Untitled'}' from {entry.entry_date}?"):
            click.echo("Kept.")
            return
        await screen.delete()
        click.echo(f"Deleted {entry_id}")
