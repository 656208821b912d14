"""Channel management CLI commands."""

import asyncio
import json

import click
from rich.console import Console
from rich.table import Table

from proma.channels.models import ChannelCreateInput, ChannelModelInfo
from proma.cli.context import get_config, open_runtime
from proma.providers.types import ProviderType

console = Console()


@click.group(name="channel")
def channel() -> None:
    """Manage channels (provider backends and their API keys)."""
    pass


@channel.command(name="add")
@click.option("--name", required=True, help="Display name")
@click.option(
    "--provider",
    required=True,
    type=click.Choice([p.value for p in ProviderType], case_sensitive=False),
    help="Wire protocol of the backend",
)
@click.option("--base-url", required=True, help="API base URL, e.g. https://api.anthropic.com")
@click.option(
    "--api-key",
    prompt=True,
    hide_input=True,
    envvar="PROMA_API_KEY",
    help="API key (prompted when omitted)",
)
@click.option("--model", "models", multiple=True, help="Model id offered by the channel")
@click.pass_context
def add_channel(
    ctx: click.Context,
    name: str,
    provider: str,
    base_url: str,
    api_key: str,
    models: tuple[str, ...],
) -> None:
    """Add a channel. The API key is stored encrypted.

    Examples:
        proma channel add --name Claude --provider anthropic \\
            --base-url https://api.anthropic.com --model claude-sonnet-4
    """
    try:
        data = ChannelCreateInput(
            name=name,
            provider=ProviderType(provider.lower()),
            base_url=base_url,
            api_key=api_key,
            models=[ChannelModelInfo(id=m, name=m) for m in models],
        )
    except ValueError as e:
        raise click.ClickException(str(e))

    async def _add() -> None:
        async with open_runtime(get_config(ctx)) as runtime:
            created = await runtime.channels.create_channel(data)
            console.print(f"[green]✓ Channel created[/green] {created.id}")

    asyncio.run(_add())


@channel.command(name="list")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format (table or json)",
)
@click.pass_context
def list_channels(ctx: click.Context, output_format: str) -> None:
    """List configured channels. API keys are never shown."""

    async def _list() -> None:
        async with open_runtime(get_config(ctx)) as runtime:
            channels = await runtime.channels.list_channels()

        if output_format == "json":
            click.echo(json.dumps([c.model_dump(mode="json") for c in channels], indent=2))
            return

        table = Table(title="Channels")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name", style="green")
        table.add_column("Provider", style="yellow")
        table.add_column("Base URL", style="blue")
        table.add_column("Models")
        table.add_column("Enabled", justify="center")

        for item in channels:
            table.add_row(
                item.id,
                item.name,
                ProviderType(item.provider).value,
                item.base_url,
                ", ".join(m.id for m in item.models) or "-",
                "yes" if item.enabled else "no",
            )

        console.print(table)
        if not channels:
            console.print("[yellow]No channels configured.[/yellow]")

    asyncio.run(_list())
