"""moir dump — the guided thought dump, and its archive."""

from __future__ import annotations

import click

from .common import async_command, credentials_options, load_config, load_secrets, open_app, signed_in


def _prompt_until(label: str, limit: int, given: str | None) -> str:
    value = given
    while value is None or not value.strip() or len(value) > limit:
        if value is not None:
            click.echo(f"  Required, at most {limit} characters.")
        value = click.prompt(label)
    return value


@click.command()
@credentials_options
@click.option("--text", default=None, help="The dump itself (prompted when omitted).")
@click.option("--problem", default=None, help="The one problem underneath it.")
@click.option("--action", default=None, help="The one action you'll take.")
@click.option("--archive", is_flag=True, help="List past thought dumps instead.")
@async_command
async def dump(email, password, text, problem, action, archive) -> None:
    """Empty your head, then compress it into one problem and one action."""
    from moir.journal import ThoughtDumpFlow

    async with open_app(load_config(), load_secrets(), email, password) as app:
        uid = signed_in(app)
        flow = ThoughtDumpFlow(
            app.accessor,
            uid,
            app.settings.thought_dump,
            navigate=lambda path: click.echo(f"Back to {path}"),
            bus=app.bus,
        )

        if archive:
            dumps = await flow.open_archive()
            if not dumps:
                click.echo("No thought dumps yet.")
            for d in dumps:
                when = f"{d.created_at:%Y-%m-%d %H:%M}" if d.created_at else "unsaved"
                click.echo(f"{when}  Problem: {d.problem_text}")
                click.echo(f"{'':16}  Action:  {d.action_text}")
            flow.back()
            return

        if text is None:
            text = click.edit("") if click.get_text_stream("stdin").isatty() else click.prompt("What's on your mind")
        flow.submit_dump(text or "")

        limit = flow.config.max_field_length
        problem = _prompt_until("The core problem", limit, problem)
        action = _prompt_until("One action you'll take", limit, action)
        await flow.submit_compression(problem, action)
        if flow.error:
            raise click.ClickException(flow.error)
        click.echo("Saved. One thing at a time.")
        flow.continue_now()
