"""Web server command."""

import click
import uvicorn

from backoffice.api.app import create_app


@click.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address")
@click.option("--port", default=8000, show_default=True, type=int, help="Bind port")
@click.pass_context
def serve(ctx, host: str, port: int):
    """Serve the Stripe webhook and admin API."""
    app = create_app(ctx.obj["settings"])
    uvicorn.run(app, host=host, port=port)


def register_commands(cli):
    """Register serve command with main CLI."""
    cli.add_command(serve)
