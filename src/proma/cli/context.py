"""Shared helpers for CLI commands: configuration and runtime lifecycle."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import click

from proma.config import PromaConfig, load_config_from_env
from proma.conversation.memory_repository import InMemoryConversationRepository
from proma.observability.logging import setup_logging
from proma.runtime import ProMaRuntime


def get_config(ctx: click.Context) -> PromaConfig:
    """Build the configuration, applying the group's ``--database-url`` override."""
    config = load_config_from_env()
    database_url = (ctx.obj or {}).get("database_url")
    if database_url:
        config = config.model_copy(update={"database_url": database_url})
    return config


@asynccontextmanager
async def open_runtime(
    config: PromaConfig, ephemeral: bool = False
) -> AsyncIterator[ProMaRuntime]:
    """Start a runtime for the duration of one command.

    Args:
        config: Configuration to run with
        ephemeral: Keep conversations in memory instead of the database
    """
    setup_logging(log_level=config.log_level, json_logs=False)
    runtime = ProMaRuntime(
        config,
        conversations=InMemoryConversationRepository() if ephemeral else None,
    )
    await runtime.start()
    try:
        yield runtime
    finally:
        await runtime.shutdown()


def parse_context_length(value: Optional[str]) -> Optional[int | str]:
    """Parse ``--context-length``: a round count or ``infinite``.

    Raises:
        click.BadParameter: If the value is neither
    """
    if value is None:
        return None
    if value.lower() == "infinite":
        return "infinite"
    try:
        rounds = int(value)
    except ValueError:
        raise click.BadParameter("must be a non-negative integer or 'infinite'") from None
    if rounds < 0:
        raise click.BadParameter("must be a non-negative integer or 'infinite'")
    return rounds
