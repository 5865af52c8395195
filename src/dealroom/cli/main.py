"""
Dealroom CLI — `dealroom` command.

Commands:
  dealroom serve                                Run the chat server
  dealroom auth token|login|status|logout       Credentials
  dealroom chat <proposal> <counterpart>        Interactive REPL chat
  dealroom send <proposal> <counterpart> <msg>  One-shot message
  dealroom history <proposal> <counterpart>     Message history
  dealroom notifications                        Notification inbox
"""

import asyncio
import json
from pathlib import Path

import click
from rich.console import Console

from dealroom import __version__
from dealroom.client import AsyncDealroomClient
from dealroom.transport.http import DEFAULT_BASE_URL

console = Console()
CONFIG_FILE = Path.home() / ".dealroom" / "config.json"


def _load_config() -> dict:
    try:
        return json.loads(CONFIG_FILE.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def _save_config(cfg: dict) -> None:
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(cfg, indent=2))


def _get_client() -> AsyncDealroomClient:
    cfg = _load_config()
    if not cfg.get("access_token"):
        console.print("[red]Not logged in. Run `dealroom auth login` first.[/red]")
        raise SystemExit(1)
    return AsyncDealroomClient(
        access_token=cfg["access_token"],
        base_url=cfg.get("base_url", DEFAULT_BASE_URL),
    )


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option(__version__)
def main():
    """Dealroom CLI — founder/investor chat."""


# Register subcommands from separate modules
from dealroom.cli.auth import auth  # noqa: E402
from dealroom.cli.chat import chat_cmd, send_cmd  # noqa: E402
from dealroom.cli.inbox import history_cmd, notifications_cmd  # noqa: E402
from dealroom.cli.serve import serve  # noqa: E402

main.add_command(auth)
main.add_command(chat_cmd)
main.add_command(send_cmd)
main.add_command(history_cmd)
main.add_command(notifications_cmd)
main.add_command(serve)


if __name__ == "__main__":
    main()
