"""Shared setup logic for CLI commands."""

from __future__ import annotations

import functools
from collections.abc import AsyncIterator, Callable, Coroutine
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import click

MOIR_DIR = Path.home() / ".moir"
CONFIG_PATH = MOIR_DIR / "config.yaml"
SECRETS_PATH = MOIR_DIR / "secrets.yaml"


def load_config():
    """Load config from ~/.moir/config.yaml and set up logging from it."""
    from moir.core.config import Config
    from moir.core.utils.logging import setup_logging

    config = Config(config_file=str(CONFIG_PATH), data_dir=str(MOIR_DIR))
    setup_logging(str(config.get("logging.level", "WARNING")))
    return config


def load_secrets():
    """Credentials from MOIR_ACCOUNT__* env vars, then ~/.moir/secrets.yaml."""
    from moir.core.secrets import EnvProvider, SecretsManager, YamlFileProvider

    return SecretsManager(providers=[EnvProvider("MOIR_"), YamlFileProvider(SECRETS_PATH)])


@dataclass
class App:
    """Everything a command needs once signed in."""

    config: Any
    session: Any
    accessor: Any
    settings: Any

    @property
    def bus(self):
        return self.session.bus

    def screen(self, cls):
        return cls(self.session, self.accessor, self.settings)


@asynccontextmanager
async def open_app(config, secrets, email: str | None = None, password: str | None = None) -> AsyncIterator[App]:
    """Build the backend, start a session and, when credentials are known, sign in."""
    from moir.backend import create_backend
    from moir.journal import CollectionAccessor, JournalSettings, SessionContext

    identity, store = create_backend(config)
    accessor = CollectionAccessor(store)
    session = SessionContext(identity, accessor)
    await session.start()
    try:
        if secrets is not None:
            email = email or secrets.get("account.email")
            password = password or secrets.get("account.password")
        if email and password and not session.is_authenticated:
            await session.login(email, password)
        yield App(config=config, session=session, accessor=accessor, settings=JournalSettings.from_config(config))
    finally:
        await session.close()


def credentials_options(func: Callable) -> Callable:
    """Add ``--email``/``--password`` overrides for the stored account."""
    func = click.option("--password", default=None, help="Account password (default: from secrets).")(func)
    func = click.option("--email", default=None, help="Account email (default: from secrets).")(func)
    return func


def run(coro: Coroutine) -> Any:
    """Run a command coroutine, turning library errors into a clean exit 1."""
    from moir.core.exceptions import MoirError
    from moir.core.utils.async_helpers import run_async_safely

    try:
        return run_async_safely(coro)
    except MoirError as e:
        raise click.ClickException(str(e)) from e


def async_command(func: Callable[..., Coroutine]) -> Callable[..., Any]:
    """Let a click command body be a coroutine function."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        return run(func(*args, **kwargs))

    return wrapper


def signed_in(app: App) -> str:
    """The signed-in uid, or a clean error telling the user how to sign in."""
    if not app.session.is_authenticated:
        raise click.ClickException("Not signed in. Pass --email/--password or run 'moir init'.")
    return app.session.uid
