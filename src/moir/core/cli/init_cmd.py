"""moir init — interactive setup wizard."""

from __future__ import annotations

import os
import stat

import click
import yaml
from rich.console import Console
from rich.panel import Panel

from .common import CONFIG_PATH, MOIR_DIR, SECRETS_PATH


def _load_existing(path) -> dict:
    """Load an existing YAML file if present."""
    if path.exists():
        with open(path) as f:
            return yaml.safe_load(f) or {}
    return {}


def _mask_key(key: str) -> str:
    """Show first 4 and last 4 chars of a key."""
    if len(key) <= 12:
        return key[:4] + "..." + key[-2:]
    return key[:4] + "..." + key[-4:]


@click.command()
def init() -> None:
    """Set up the backend connection and your account credentials."""
    console = Console()
    existing_config = _load_existing(CONFIG_PATH)
    existing_secrets = _load_existing(SECRETS_PATH)

    if existing_config:
        console.print(Panel("Reconfiguring Moir. Existing values shown as defaults.", title="Moir Setup"))
    else:
        console.print(Panel("Let's connect Moir to your journal backend.", title="Welcome to Moir"))

    # --- Backend ---
    backend = existing_config.get("backend", {}) or {}
    kind = click.prompt(
        "\nBackend",
        type=click.Choice(["firebase", "memory"]),
        default=backend.get("kind", "firebase"),
    )
    project_id = backend.get("project_id", "")
    api_key = backend.get("api_key", "")
    if kind == "firebase":
        project_id = click.prompt("Firebase project id", default=project_id or None)
        if api_key:
            click.echo(f"  Web API key on file: {_mask_key(api_key)}")
        if not api_key or click.confirm("  Change it?", default=False):
            api_key = click.prompt("Firebase web API key", hide_input=True)

    # --- Account ---
    account = existing_secrets.get("account", {}) or {}
    email = click.prompt("\nAccount email", default=account.get("email") or None)
    password = account.get("password", "")
    if not password or click.confirm("Set/change the stored password?", default=False):
        password = click.prompt("Account password", hide_input=True)

    MOIR_DIR.mkdir(exist_ok=True)
    (MOIR_DIR / "logs").mkdir(exist_ok=True)

    config_data = dict(existing_config)
    config_data["backend"] = {**backend, "kind": kind, "project_id": project_id, "api_key": api_key}
    with open(CONFIG_PATH, "w") as f:
        yaml.safe_dump(config_data, f, default_flow_style=False, sort_keys=False)

    secrets_data = dict(existing_secrets)
    secrets_data["account"] = {"email": email, "password": password}
    with open(SECRETS_PATH, "w") as f:
        yaml.safe_dump(secrets_data, f, default_flow_style=False)
    os.chmod(SECRETS_PATH, stat.S_IRUSR | stat.S_IWUSR)  # 600

    console.print(
        Panel(
            f"Backend: {kind}{f' ({project_id})' if kind == 'firebase' else ''}\nAccount: {email}\nConfig: {CONFIG_PATH}",
            title="Setup Complete",
        )
    )
    click.echo("Try:  moir dashboard")
