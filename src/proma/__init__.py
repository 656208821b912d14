"""Proma - multi-provider streaming chat core.

Normalizes Anthropic, OpenAI and Google streaming protocols into one event
model, orchestrates cancellable chat turns, and persists conversation history.
"""

__version__ = "0.1.0"
