"""CLI: dealroom auth token|login|status|logout"""

from datetime import timedelta
from typing import Optional

import click
from rich.console import Console

from dealroom.auth import SessionValidator
from dealroom.config import Settings
from dealroom.errors import AuthenticationError
from dealroom.models.identity import ROLES

console = Console()


def _load_config() -> dict:
    from dealroom.cli.main import _load_config
    return _load_config()


def _save_config(cfg: dict) -> None:
    from dealroom.cli.main import _save_config
    _save_config(cfg)


@click.group()
def auth():
    """Authentication commands."""


@auth.command("token")
@click.argument("user_id", type=int)
@click.option("--role", type=click.Choice(ROLES), required=True)
@click.option("--name", default="")
@click.option("--email", default=None)
def auth_token(user_id: int, role: str, name: str, email: Optional[str]):
    """Mint a development token signed with DEALROOM_SECRET_KEY."""
    settings = Settings()
    validator = SessionValidator(settings.secret_key, settings.algorithm)
    token = validator.issue_token(
        user_id, role, name=name, email=email, ttl=timedelta(seconds=settings.token_ttl_seconds),
    )
    click.echo(token)


@auth.command("login")
@click.argument("token")
@click.option("--base-url", default=None, help="Dealroom server URL")
def auth_login(token: str, base_url: Optional[str]):
    """Save an access token for later commands."""
    cfg = _load_config()
    url = base_url or cfg.get("base_url", "http://localhost:8080")
    settings = Settings()
    try:
        identity = SessionValidator(settings.secret_key, settings.algorithm).validate(token)
        console.print(f"[green]Logged in as {identity.name or identity.email or identity.id} "
                      f"(ID: {identity.id}, {identity.role})[/green]")
        cfg.update({"user_id": identity.id, "role": identity.role})
    except AuthenticationError:
        # signed by a server whose key we don't hold; keep it and let the server decide
        console.print("[yellow]Token saved without local verification.[/yellow]")
    _save_config({**cfg, "access_token": token, "base_url": url})
    console.print("[dim]Token saved to ~/.dealroom/config.json[/dim]")


@auth.command("status")
def auth_status():
    """Show current auth status."""
    cfg = _load_config()
    if cfg.get("access_token"):
        console.print(f"[green]Logged in[/green] (ID: {cfg.get('user_id', 'unknown')}) at {cfg.get('base_url')}")
    else:
        console.print("[yellow]Not logged in. Run `dealroom auth login`.[/yellow]")


@auth.command("logout")
def auth_logout():
    """Clear saved credentials."""
    _save_config({})
    console.print("[green]Logged out.[/green]")
