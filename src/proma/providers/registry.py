"""Lookup of provider adapters by provider tag."""

from typing import Union

from proma.providers.anthropic import AnthropicAdapter
from proma.providers.errors import UnsupportedProviderError
from proma.providers.google import GoogleAdapter
from proma.providers.openai import OpenAIAdapter
from proma.providers.types import ProviderAdapter, ProviderType

_ADAPTERS: dict[ProviderType, ProviderAdapter] = {
    ProviderType.ANTHROPIC: AnthropicAdapter(),
    ProviderType.OPENAI: OpenAIAdapter(),
    ProviderType.GOOGLE: GoogleAdapter(),
    ProviderType.DEEPSEEK: OpenAIAdapter(ProviderType.DEEPSEEK),
    ProviderType.CUSTOM: OpenAIAdapter(ProviderType.CUSTOM),
}


def get_adapter(provider: Union[ProviderType, str]) -> ProviderAdapter:
    """Return the adapter for a provider tag.

    Args:
        provider: ProviderType member or its string value

    Raises:
        UnsupportedProviderError: If the tag has no adapter
    """
    try:
        return _ADAPTERS[ProviderType(provider)]
    except (ValueError, KeyError):
        raise UnsupportedProviderError(str(provider)) from None


def supported_providers() -> list[ProviderType]:
    """List the provider tags that have an adapter."""
    return list(_ADAPTERS)
