"""Interactive chat CLI command.

Sends one message through the same ``ChatService`` the API uses and prints
the streamed reply as it arrives.
"""

import asyncio
import signal
from typing import Optional

import click
from rich.console import Console

from proma.chat.models import ChatSendInput, GenerateTitleInput
from proma.cli.context import get_config, open_runtime, parse_context_length
from proma.runtime import ProMaRuntime

console = Console()


async def _stream_turn(
    runtime: ProMaRuntime, turn: ChatSendInput, show_reasoning: bool
) -> Optional[str]:
    """Run one turn, printing events until the terminal one.

    Returns:
        Error message of a failed turn, or None
    """
    service = runtime.chat_service
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, service.stop_generation, turn.conversation_id)
    except (NotImplementedError, RuntimeError):
        pass

    try:
        async with runtime.event_bus.subscribe(turn.conversation_id) as events:
            task = asyncio.create_task(service.send_message(turn))
            async for event in events:
                if event.type == "chunk":
                    console.print(event.delta, end="", markup=False, highlight=False)
                elif event.type == "reasoning":
                    if show_reasoning:
                        console.print(event.delta, end="", style="dim", markup=False)
                elif event.type == "complete":
                    console.print()
                    if event.message_id is None:
                        console.print("[yellow]Stopped before any reply.[/yellow]")
                    break
                elif event.type == "error":
                    await task
                    return event.error
            await task
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass
    return None


@click.command(name="chat")
@click.argument("message", type=str)
@click.option("--channel", "channel_id", required=True, help="Channel id to use")
@click.option("--model", "model_id", required=True, help="Model id on the channel")
@click.option("--conversation", "conversation_id", help="Continue an existing conversation")
@click.option("--system", "system_message", help="System prompt")
@click.option(
    "--context-length",
    help="Number of previous rounds to send, or 'infinite'",
)
@click.option("--thinking", is_flag=True, help="Request reasoning output")
@click.option("--show-reasoning", is_flag=True, help="Print reasoning output")
@click.option("--ephemeral", is_flag=True, help="Keep the conversation in memory only")
@click.pass_context
def chat(
    ctx: click.Context,
    message: str,
    channel_id: str,
    model_id: str,
    conversation_id: Optional[str],
    system_message: Optional[str],
    context_length: Optional[str],
    thinking: bool,
    show_reasoning: bool,
    ephemeral: bool,
) -> None:
    """Send MESSAGE and stream the reply. Ctrl-C stops generation.

    Examples:
        proma chat --channel ch-1 --model claude-sonnet-4 "What's 2+2?"
        proma chat --channel ch-1 --model gpt-4o --conversation c-1 --context-length 3 "And 3+3?"
    """
    rounds = parse_context_length(context_length)

    async def _chat() -> None:
        async with open_runtime(get_config(ctx), ephemeral=ephemeral) as runtime:
            conversations = runtime.conversations
            is_new = conversation_id is None
            if is_new:
                meta = await conversations.create_conversation(
                    model_id=model_id, channel_id=channel_id
                )
            else:
                meta = await conversations.get_conversation(conversation_id)
                if meta is None:
                    raise click.ClickException(f"Conversation {conversation_id} not found")

            turn = ChatSendInput(
                conversation_id=meta.id,
                user_message=message,
                channel_id=channel_id,
                model_id=model_id,
                system_message=system_message,
                context_length=rounds if rounds is not None else meta.context_length,
                context_dividers=meta.context_dividers,
                thinking_enabled=thinking,
            )
            error = await _stream_turn(runtime, turn, show_reasoning)
            if error:
                raise click.ClickException(error)

            if is_new:
                title = await runtime.chat_service.generate_title(
                    GenerateTitleInput(
                        user_message=message, channel_id=channel_id, model_id=model_id
                    )
                )
                if title:
                    await conversations.update_title(meta.id, title)
            console.print(f"[dim]conversation {meta.id}[/dim]")

    asyncio.run(_chat())
