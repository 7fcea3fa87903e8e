"""HTTP image provider.

POSTs the request as JSON to a generation endpoint and takes the response
body as the image. Any transport failure, non-2xx status or empty body
becomes an ``ExternalApiError``. The provider never retries.
"""

from __future__ import annotations

import httpx

from worldstate.core.errors import ExternalApiError
from worldstate.core.logging import get_logger
from worldstate.core.result import Err, Ok, Result
from worldstate.providers.base import ImageRequest, ImageResponse

logger = get_logger(__name__)


class HttpImageProvider:
    name = "http"

    def __init__(self, http: httpx.AsyncClient, url: str, *, timeout: float = 15.0):
        self.http = http
        self.url = url
        self.timeout = timeout

    async def generate(self, request: ImageRequest) -> Result[ImageResponse]:
        try:
            response = await self.http.post(self.url, json=request.to_dict(), timeout=self.timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            error = ExternalApiError(
                f"Image provider request failed: {e}", provider=self.name, cause=e
            ).with_context(url=self.url, stage="image_provider")
            logger.error("image_provider.exception", **error.to_dict())
            return Err(error)

        if not response.is_success:
            error = ExternalApiError(
                f"Image provider returned HTTP {response.status_code}",
                provider=self.name,
                status=response.status_code,
            ).with_context(url=self.url, stage="image_provider")
            logger.error("image_provider.error", **error.to_dict())
            return Err(error)

        if not response.content:
            return Err(
                ExternalApiError("Image provider returned an empty body", provider=self.name)
            )

        return Ok(
            ImageResponse(
                image_bytes=response.content,
                provider_metadata={
                    "status": response.status_code,
                    "contentType": response.headers.get("content-type"),
                },
            )
        )
