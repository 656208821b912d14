"""History windowing: the slice of a conversation replayed to the backend."""

from typing import Optional, Sequence

from proma.conversation.models import ContextLength, Message, MessageRole


def filter_history(
    messages: Sequence[Message],
    context_dividers: Optional[Sequence[str]] = None,
    context_length: Optional[ContextLength] = None,
) -> list[Message]:
    """Trim a message history by divider and by round count.

    1. Divider trimming: when dividers exist and the last one is found in the
       history, every message at or before it is dropped.
    2. Round trimming: for an integer ``context_length`` N, walk backwards
       from the end and keep messages until N user messages have been
       collected. N = 0 always yields an empty list.
    3. ``"infinite"`` or None applies no round trimming.

    Divider trimming always runs first, so the round limit counts rounds of
    the post-divider view.

    Args:
        messages: Full history in chronological order
        context_dividers: Ordered divider message ids; only the last one counts
        context_length: Round limit, ``"infinite"``, or None

    Returns:
        New list holding the windowed history in chronological order

    Examples:
        >>> from proma.conversation.models import Message
        >>> history = [Message(role="user", content="hi"), Message(role="assistant", content="hello")]
        >>> [m.content for m in filter_history(history, [], 1)]
        ['hi', 'hello']
        >>> filter_history(history, [], 0)
        []
    """
    filtered = list(messages)

    if context_dividers:
        last_divider_id = context_dividers[-1]
        for index, message in enumerate(filtered):
            if message.id == last_divider_id:
                filtered = filtered[index + 1 :]
                break

    # bool is an int subclass; never treat it as a round count
    if isinstance(context_length, int) and not isinstance(context_length, bool):
        if context_length <= 0:
            return []

        collected: list[Message] = []
        round_count = 0
        for message in reversed(filtered):
            collected.append(message)
            if message.role == MessageRole.USER:
                round_count += 1
                if round_count >= context_length:
                    break
        collected.reverse()
        return collected

    return filtered
