"""Base URL normalization for provider endpoints."""

import re

_VERSION_SUFFIX = re.compile(r"/v\d+(beta\d*)?$")


def normalize_base_url(base_url: str) -> str:
    """Strip whitespace and trailing slashes.

    Example:
        >>> normalize_base_url("https://api.openai.com/v1/")
        'https://api.openai.com/v1'
    """
    return base_url.strip().rstrip("/")


def normalize_anthropic_base_url(base_url: str) -> str:
    """Normalize an Anthropic base URL so it ends with an API version segment.

    Users commonly paste either ``https://api.anthropic.com`` or
    ``https://api.anthropic.com/v1``; both resolve to the latter.

    Example:
        >>> normalize_anthropic_base_url("https://api.anthropic.com")
        'https://api.anthropic.com/v1'
    """
    url = normalize_base_url(base_url)
    if not _VERSION_SUFFIX.search(url):
        url = f"{url}/v1"
    return url
