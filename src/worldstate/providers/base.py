"""Image provider contract.

The generation backend is a black box: it receives a prompt, a negative
prompt, a size, a format and a seed and returns image bytes. Providers
return ``Result`` and never raise; an ``Err`` aborts the tick.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal, Protocol, runtime_checkable

from worldstate.core.result import Result

ImageFormat = Literal["webp", "png"]


@dataclass(frozen=True, slots=True)
class ImageRequest:
    prompt: str
    negative: str
    width: int
    height: int
    format: ImageFormat
    seed: str
    model: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class ImageResponse:
    image_bytes: bytes
    provider_metadata: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class ImageProvider(Protocol):
    name: str

    async def generate(self, request: ImageRequest) -> Result[ImageResponse]:
        ...


__all__ = ["ImageFormat", "ImageRequest", "ImageResponse", "ImageProvider"]
