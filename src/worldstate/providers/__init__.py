"""
Image providers.

Usage::

    from worldstate.providers import resolve_provider

    provider = resolve_provider("mock")
    result = await provider.generate(request)
"""

from __future__ import annotations

import httpx

from worldstate.providers.base import ImageProvider, ImageRequest, ImageResponse
from worldstate.providers.http import HttpImageProvider
from worldstate.providers.mock import MockImageProvider

PROVIDER_NAMES = ("mock", "http")


def resolve_provider(
    name: str = "mock",
    *,
    http: httpx.AsyncClient | None = None,
    url: str | None = None,
    timeout: float = 15.0,
) -> ImageProvider:
    """
    Build a provider by name.

    Raises:
        ValueError: For an unknown name, or ``http`` without a client and URL
    """
    if name == "mock":
        return MockImageProvider()
    if name == "http":
        if http is None or not url:
            raise ValueError("The http image provider needs an httpx client and a URL")
        return HttpImageProvider(http, url, timeout=timeout)
    raise ValueError(f"Unknown image provider '{name}'. Supported: {list(PROVIDER_NAMES)}")


__all__ = [
    "ImageProvider",
    "ImageRequest",
    "ImageResponse",
    "MockImageProvider",
    "HttpImageProvider",
    "resolve_provider",
]
