"""moir login / register / profile — account commands."""

from __future__ import annotations

import click

from .common import async_command, credentials_options, load_config, load_secrets, open_app, signed_in


@click.command()
@credentials_options
@async_command
async def login(email: str | None, password: str | None) -> None:
    """Check that your credentials work."""
    async with open_app(load_config(), load_secrets(), email, password) as app:
        signed_in(app)
        user = app.session.current_user()
        click.echo(f"Signed in as {user.display_name} <{user.email}>")


@click.command()
@click.option("--username", prompt="Username", help="Name shown in the app.")
@click.option("--email", prompt="Email")
@click.option("--password", prompt="Password", hide_input=True, confirmation_prompt=True)
@async_command
async def register(username: str, email: str, password: str) -> None:
    """Create an account and its profile."""
    # No stored credentials: this is a new account
    async with open_app(load_config(), None) as app:
        user = await app.session.register(username, email, password)
        click.echo(f"Welcome, {user.username}! Account created for {user.email}.")


@click.command()
@credentials_options
@click.option("--username", default=None)
@click.option("--first-name", default=None)
@click.option("--occupation", default=None)
@click.option("--avatar", default=None, help="Avatar reference (URL or preset name).")
@async_command
async def profile(
    email: str | None,
    password: str | None,
    username: str | None,
    first_name: str | None,
    occupation: str | None,
    avatar: str | None,
) -> None:
    """Show or update your profile."""
    patch = {
        key: value
        for key, value in (
            ("username", username),
            ("first_name", first_name),
            ("occupation", occupation),
            ("avatar", avatar),
        )
        if value is not None
    }
    async with open_app(load_config(), load_secrets(), email, password) as app:
        signed_in(app)
        user = await app.session.update_user(patch) if patch else app.session.current_user()
        click.echo(f"Username:   {user.username}")
        click.echo(f"Email:      {user.email}")
        click.echo(f"First name: {user.first_name or '-'}")
        click.echo(f"Occupation: {user.occupation or '-'}")
        if user.avatar:
            click.echo(f"Avatar:     {user.avatar}")
