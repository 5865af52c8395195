"""CLI: dealroom serve"""

import logging
from typing import Optional

import click
import uvicorn
from rich.logging import RichHandler

from dealroom.config import Settings


@click.command("serve")
@click.option("--host", default=None, help="Bind address (default: DEALROOM_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: DEALROOM_PORT)")
@click.option("--log-level", default="info", type=click.Choice(["debug", "info", "warning", "error"]))
def serve(host: Optional[str], port: Optional[int], log_level: str):
    """Run the chat server."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
    settings = Settings()
    uvicorn.run(
        "dealroom.server.app:create_asgi_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        log_level=log_level,
        log_config=None,
    )
