"""Conversation CLI commands."""

import asyncio
import json

import click
from rich.console import Console
from rich.table import Table

from proma.cli.context import get_config, open_runtime

console = Console()


@click.group(name="conversation")
def conversation() -> None:
    """Inspect stored conversations."""
    pass


@conversation.command(name="list")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format (table or json)",
)
@click.pass_context
def list_conversations(ctx: click.Context, output_format: str) -> None:
    """List conversations, most recently updated first."""

    async def _list() -> None:
        async with open_runtime(get_config(ctx)) as runtime:
            conversations = await runtime.conversations.list_conversations()

        if output_format == "json":
            click.echo(json.dumps([c.model_dump(mode="json") for c in conversations], indent=2))
            return

        table = Table(title="Conversations")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Title", style="green")
        table.add_column("Model", style="yellow")
        table.add_column("Pinned", justify="center")
        table.add_column("Updated", style="dim")

        for item in conversations:
            table.add_row(
                item.id,
                item.title,
                item.model_id or "-",
                "*" if item.pinned else "",
                item.updated_at.strftime("%Y-%m-%d %H:%M"),
            )

        console.print(table)
        if not conversations:
            console.print("[yellow]No conversations found.[/yellow]")

    asyncio.run(_list())


@conversation.command(name="show")
@click.argument("conversation_id", type=str)
@click.option("--limit", type=int, default=20, help="Number of recent messages to show")
@click.pass_context
def show_conversation(ctx: click.Context, conversation_id: str, limit: int) -> None:
    """Print the most recent messages of a conversation."""

    async def _show() -> None:
        async with open_runtime(get_config(ctx)) as runtime:
            meta = await runtime.conversations.get_conversation(conversation_id)
            if meta is None:
                raise click.ClickException(f"Conversation {conversation_id} not found")
            page = await runtime.conversations.get_recent_messages(conversation_id, limit)

        console.print(f"[blue]{meta.title}[/blue]")
        if page.has_more:
            console.print(f"[dim]... {page.total - len(page.messages)} earlier messages[/dim]")
        for message in page.messages:
            suffix = " [yellow](stopped)[/yellow]" if message.stopped else ""
            console.print(f"[bold]{message.role}[/bold]{suffix}: {message.content}")

    asyncio.run(_show())
