"""Deterministic offline image provider.

Produces a small RIFF/WEBP-framed payload whose body is the SHA-256 of the
prompt and seed, so identical requests yield identical bytes. Used by tests
and by ``worldstate tick`` when no real backend is configured.
"""

from __future__ import annotations

import hashlib

from worldstate.core.logging import get_logger
from worldstate.core.result import Ok, Result
from worldstate.domain.prompt import prompt_token_summary
from worldstate.providers.base import ImageRequest, ImageResponse

logger = get_logger(__name__)


class MockImageProvider:
    name = "mock"

    def __init__(self) -> None:
        self.requests: list[ImageRequest] = []

    async def generate(self, request: ImageRequest) -> Result[ImageResponse]:
        self.requests.append(request)
        logger.info(
            "mock.prompt.final",
            seed=request.seed,
            model=request.model,
            size=f"{request.width}x{request.height}",
            tokens=prompt_token_summary(request.prompt, request.negative),
        )
        digest = hashlib.sha256(f"{request.prompt}|{request.seed}".encode()).digest()
        body = b"WEBP" + digest
        payload = b"RIFF" + len(body).to_bytes(4, "little") + body
        return Ok(ImageResponse(image_bytes=payload, provider_metadata={"mock": True}))

    @property
    def call_count(self) -> int:
        return len(self.requests)
