"""
Prompt composition for one tick.

Everything here is deterministic except the minute bucket, which comes from
an injected :class:`~worldstate.core.timestamps.Clock`. Composition fails
only if the clock does.

    RoundedCapMap
      → normalize_cap_map → map_to_visual_params → params_hash
      → clock.minute_bucket() → minute_seed
      → build_sdxl_prompt, canonical_filename
      → PromptComposition
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from worldstate.core.errors import InternalError
from worldstate.core.hashing import canonical_filename, minute_seed, params_hash
from worldstate.core.logging import get_logger
from worldstate.core.result import Err, Ok, Result
from worldstate.core.timestamps import Clock, SystemClock
from worldstate.domain.mapping import VisualParams, map_to_visual_params
from worldstate.domain.normalize import normalize_cap_map
from worldstate.domain.prompt import build_sdxl_prompt

logger = get_logger(__name__)

IMAGE_WIDTH = 1024
IMAGE_HEIGHT = 1024
IMAGE_FORMAT = "webp"


@dataclass(frozen=True, slots=True)
class PromptComposition:
    """Immutable per-tick prompt, handed to the provider and to storage."""

    seed: str
    minute_bucket: str
    visual_params: VisualParams
    prompt_text: str
    negative_text: str
    width: int
    height: int
    format: str
    filename: str
    params_hash: str

    @property
    def size(self) -> str:
        return f"{self.width}x{self.height}"


class PromptComposer:
    def __init__(self, clock: Clock | None = None):
        self.clock = clock or SystemClock()

    def compose(self, rounded: Mapping[str, float]) -> Result[PromptComposition]:
        normalized = normalize_cap_map(rounded)
        visual_params = map_to_visual_params(normalized)
        vp_hash = params_hash(visual_params)

        try:
            bucket = self.clock.minute_bucket()
        except Exception as e:  # noqa: BLE001
            logger.error("prompt.compose.error", error=str(e))
            return Err(InternalError(f"Clock failed: {e}", cause=e).with_context(stage="prompt"))

        seed = minute_seed(bucket, vp_hash)
        text = build_sdxl_prompt(rounded)
        composition = PromptComposition(
            seed=seed,
            minute_bucket=bucket,
            visual_params=visual_params,
            prompt_text=text.prompt,
            negative_text=text.negative,
            width=IMAGE_WIDTH,
            height=IMAGE_HEIGHT,
            format=IMAGE_FORMAT,
            filename=canonical_filename(bucket, vp_hash, seed),
            params_hash=vp_hash,
        )
        logger.debug("prompt.compose", params_hash=vp_hash, seed=seed, minute_bucket=bucket)
        return Ok(composition)


__all__ = ["PromptComposition", "PromptComposer", "IMAGE_WIDTH", "IMAGE_HEIGHT", "IMAGE_FORMAT"]
