"""CLI: dealroom history, dealroom notifications"""

import json

import click
from rich.console import Console
from rich.table import Table

console = Console()


def _get_client():
    from dealroom.cli.main import _get_client
    return _get_client()


def _run(coro):
    from dealroom.cli.main import _run
    return _run(coro)


@click.command("history")
@click.argument("proposal_id", type=int)
@click.argument("counterpart_id", type=int)
@click.option("--json-output", "--json", is_flag=True)
def history_cmd(proposal_id: int, counterpart_id: int, json_output: bool):
    """Show the message history with a counterpart."""

    async def _history():
        client = _get_client()
        try:
            messages = await client.history(proposal_id, counterpart_id)
        finally:
            await client.close()
        if json_output:
            click.echo(json.dumps([m.to_wire() for m in messages], indent=2))
            return
        table = Table(title=f"Proposal {proposal_id} ({len(messages)} messages)")
        table.add_column("ID", style="bold")
        table.add_column("From")
        table.add_column("Message")
        table.add_column("Sent")
        table.add_column("Read")
        for m in messages:
            table.add_row(str(m.id), str(m.sender_id), m.content, m.created_at.isoformat(), "yes" if m.read else "")
        console.print(table)

    _run(_history())


@click.command("notifications")
@click.option("--json-output", "--json", is_flag=True)
def notifications_cmd(json_output: bool):
    """List your notifications, newest first."""

    async def _list():
        client = _get_client()
        try:
            notifications = await client.notifications()
        finally:
            await client.close()
        if json_output:
            click.echo(json.dumps([n.to_wire() for n in notifications], indent=2))
            return
        table = Table(title=f"Notifications ({len(notifications)} total)")
        table.add_column("ID", style="bold")
        table.add_column("Type")
        table.add_column("Content")
        table.add_column("Created")
        for n in notifications:
            style = "" if n.read else "bold"
            table.add_row(str(n.id), n.type, n.content, n.created_at.isoformat(), style=style)
        console.print(table)

    _run(_list())
