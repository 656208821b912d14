"""Main CLI entry point for Proma."""

import os
from typing import Optional

import click
import uvicorn

from proma import __version__
from proma.cli import channel, chat, conversation


@click.group()
@click.version_option(version=__version__, prog_name="proma")
@click.option(
    "--database-url",
    envvar="PROMA_DATABASE_URL",
    help="Async database URL (overrides PROMA_DATABASE_URL)",
)
@click.pass_context
def cli(ctx: click.Context, database_url: Optional[str]) -> None:
    """Proma - multi-provider LLM chat."""
    ctx.ensure_object(dict)
    ctx.obj["database_url"] = database_url


@cli.command(name="serve")
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address")
@click.option("--port", default=8000, show_default=True, type=int, help="Bind port")
@click.option("--reload", is_flag=True, help="Reload on code changes")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, reload: bool) -> None:
    """Run the HTTP API."""
    if ctx.obj.get("database_url"):
        os.environ["PROMA_DATABASE_URL"] = ctx.obj["database_url"]
    uvicorn.run("proma.api.app:app", host=host, port=port, reload=reload)


# Register command groups
cli.add_command(channel.channel)
cli.add_command(conversation.conversation)
cli.add_command(chat.chat)


def main() -> None:
    """CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
