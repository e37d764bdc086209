"""moir dashboard / calendar / search / reflect — read-only views."""

from __future__ import annotations

from datetime import date

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from .common import async_command, credentials_options, load_config, load_secrets, open_app, signed_in


@click.command()
@credentials_options
@async_command
async def dashboard(email, password) -> None:
    """Stats, recent entries and your current focus."""
    from moir.journal.screens import DashboardScreen

    async with open_app(load_config(), load_secrets(), email, password) as app:
        signed_in(app)
        screen = app.screen(DashboardScreen)
        stats = await screen.refresh()
        user = app.session.current_user()

        console = Console()
        console.print(f"Welcome back, {escape(user.display_name)}")
        console.print(
            f"Entries: {stats.total_entries}   Notebooks: {stats.total_notebooks}   "
            f"Streak: {stats.writing_streak} day{'s' if stats.writing_streak != 1 else ''}"
        )
        if screen.latest_action is not None:
            focus = screen.latest_action
            body = f"{escape(focus.action_text)}\n[dim]{escape(focus.problem_text)}[/dim]"
            console.print(Panel(body, title="Current focus"))
        if stats.recent_entries:
            click.echo("\nRecent entries:")
            for entry in stats.recent_entries:
                click.echo(f"  {entry.entry_date}  {entry.title or 'Untitled'}  ({entry.id})")
        else:
            click.echo("\nNo entries yet. Start with 'moir write'.")


@click.command()
@credentials_options
@click.option("--month", default=None, help="Month to show as YYYY-MM (default: this month).")
@async_command
async def calendar(email, password, month) -> None:
    """Writing activity for a month."""
    from moir.journal.screens import CalendarScreen

    async with open_app(load_config(), load_secrets(), email, password) as app:
        signed_in(app)
        screen = app.screen(CalendarScreen)
        if month:
            try:
                year, mon = (int(p) for p in month.split("-", 1))
                date(year, mon, 1)
            except ValueError as e:
                raise click.BadParameter(f"expected YYYY-MM, got {month!r}", param_hint="--month") from e
            screen.year, screen.month = year, mon
        await screen.refresh()

        click.echo(f"{date(screen.year, screen.month, 1):%B %Y}")
        click.echo("  Su   Mo   Tu   We   Th   Fr   Sa")
        for week in screen.grid:
            cells = []
            for day in week:
                if day is None:
                    cells.append("     ")
                    continue
                count = screen.count_for(day)
                cells.append(f"{day:>3}{'*' * min(count, 2):<2}")
            click.echo("".join(cells).rstrip())
        total = sum(screen.counts.values())
        click.echo(f"\n{total} entries on {len(screen.counts)} days")


@click.command()
@credentials_options
@click.argument("query")
@async_command
async def search(email, password, query) -> None:
    """Find entries containing QUERY in the title or body."""
    from moir.journal.screens import SearchScreen
    from moir.journal.search import render_highlight

    async with open_app(load_config(), load_secrets(), email, password) as app:
        signed_in(app)
        screen = app.screen(SearchScreen)
        screen.query = query
        try:
            await screen.run()
        finally:
            await screen.close()
        hits = screen.hits()
        if not hits:
            click.echo(f"No entries match '{query}'.")
            return
        click.echo(f"{len(hits)} result{'s' if len(hits) != 1 else ''} for '{query}':\n")
        for hit in hits:
            entry = hit.result.entry
            title = render_highlight(hit.title) or "Untitled"
            click.echo(f"{entry.entry_date}  {title}  ({entry.id})")
            click.echo(f"    {render_highlight(hit.preview)}")


@click.command()
@credentials_options
@async_command
async def reflect(email, password) -> None:
    """This week's reflection for your digest notebooks."""
    from moir.journal.screens import WeeklyReflectionScreen

    async with open_app(load_config(), load_secrets(), email, password) as app:
        signed_in(app)
        screen = app.screen(WeeklyReflectionScreen)
        insights = await screen.refresh()
        if insights is None:
            raise click.ClickException("Could not load your entries. Check your connection and try again.")
        if not insights.has_enough_data:
            click.echo(insights.message)
            if insights.entry_count:
                click.echo(f"Entries this week so far: {insights.entry_count}")
            return

        console = Console()
        console.print(Panel(insights.summary_text, title=f"Weekly reflection · {insights.entry_count} entries"))
        console.print(f"Most active: {insights.dominant_time}")
        console.print(f"Themes: {', '.join(insights.top_keywords)}")
        if insights.is_placeholder:
            console.print("[dim](Sample insights: content analysis is not available yet.)[/dim]")
