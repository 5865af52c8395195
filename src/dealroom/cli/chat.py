"""CLI: dealroom chat, dealroom send"""

import asyncio
import json

import click
from rich.console import Console

from dealroom.models.events import S2CEvent

console = Console()


def _get_client():
    from dealroom.cli.main import _get_client
    return _get_client()


def _run(coro):
    from dealroom.cli.main import _run
    return _run(coro)


def _render(event_type: str, data: dict) -> None:
    if event_type == S2CEvent.MESSAGE_CREATED:
        console.print(f"[green]#{data.get('senderId')}:[/green] {data.get('content', '')}")
    elif event_type == S2CEvent.TYPING:
        console.print(f"[dim]#{data.get('userId')} is typing...[/dim]")
    elif event_type == S2CEvent.NOTIFICATION:
        console.print(f"[yellow]Notification:[/yellow] {data.get('content', '')}")
    elif event_type == S2CEvent.STATUS_UPDATE:
        console.print(f"[cyan]Proposal {data.get('proposalId')} is now {data.get('status')}[/cyan]")
    elif event_type == S2CEvent.ERROR:
        console.print(f"[red]Error:[/red] {data.get('message', '')}")


@click.command("chat")
@click.argument("proposal_id", type=int)
@click.argument("counterpart_id", type=int)
def chat_cmd(proposal_id: int, counterpart_id: int):
    """Interactive chat with a counterpart about a proposal."""

    async def _chat():
        client = _get_client()
        await client.connect()
        await client.join_room(proposal_id, counterpart_id)
        for message in await client.history(proposal_id, counterpart_id):
            console.print(f"[dim]#{message.sender_id}: {message.content}[/dim]")
        console.print("[cyan]Type your message (Ctrl+C to exit)[/cyan]\n")

        async def _print_events():
            async for event in client.subscribe():
                if isinstance(event.data, dict):
                    _render(event.type, event.data)

        printer = asyncio.create_task(_print_events())
        try:
            while True:
                msg = await asyncio.to_thread(click.prompt, "You", prompt_suffix=": ")
                if msg.lower() in ("/quit", "/exit"):
                    break
                await client.send_message(proposal_id, counterpart_id, msg)
        except (KeyboardInterrupt, EOFError, click.Abort):
            pass
        finally:
            printer.cancel()
            await client.leave_room(proposal_id, counterpart_id)
            await client.close()

    _run(_chat())


@click.command("send")
@click.argument("proposal_id", type=int)
@click.argument("counterpart_id", type=int)
@click.argument("message")
@click.option("--json-output", "--json", is_flag=True)
def send_cmd(proposal_id: int, counterpart_id: int, message: str, json_output: bool):
    """Send a one-shot message."""

    async def _send():
        client = _get_client()
        await client.connect()
        try:
            await client.join_room(proposal_id, counterpart_id)
            sent = await client.send_message(proposal_id, counterpart_id, message)
        finally:
            await client.close()
        if json_output:
            click.echo(json.dumps(sent.to_wire()))
        else:
            console.print(f"[green]Sent message {sent.id}[/green]")

    _run(_send())
