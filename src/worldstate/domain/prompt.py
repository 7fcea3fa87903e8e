"""
Weighted prompt model.

Turns a rounded cap map into an SDXL-style prompt in which every symbol
contributes a ``(phrase:weight)`` fragment. Weights express relative
dominance: the largest cap gets ``max_weight``, the rest fall off with the
square of their share, and nothing drops below ``min_weight``.

Architecture:
    ::

        RoundedCapMap
            │  calculate_dominance_weights()
            ▼   min + (cap / max_cap) ** exponent * (max - min)
        {symbol: weight}
            │  to_weighted_fragments()   sort desc (stable), append human element
            ▼
        [WeightedFragment, ...]
            │  build_sdxl_prompt()
            ▼
        opening line
        (phrase:1.23),
        (phrase:0.45),
        ...,
        style line,
        weights summary: sum=..., min=..., max=...,
        negative prompt: ...

Examples:
    >>> weights = calculate_dominance_weights({s: 0.0 for s in SYMBOLS})
    >>> set(weights.values())
    {0.1}

Tags:
    prompt, weights, pure
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from worldstate.core.numeric import js_round, to_fixed
from worldstate.domain.tokens import SYMBOLS


@dataclass(frozen=True, slots=True)
class DominanceWeightConfig:
    min_weight: float = 0.1
    max_weight: float = 2.0
    exponent: float = 2.0
    tokens: tuple[str, ...] = field(default=SYMBOLS)


DEFAULT_DOMINANCE_CONFIG = DominanceWeightConfig()

TOKEN_PHRASES: dict[str, str] = {
    "CO2": "dense toxic smog in the sky",
    "ICE": "melting glaciers submerging cities as rising oceans engulf skyscrapers and drown civilizations",
    "FOREST": (
        "endless expanses of vibrant green canopies, intertwined roots reclaiming abandoned structures, "
        "and wildlife thriving in the untouched wilderness"
    ),
    "NUKE": (
        "ashen wastelands under nuclear fallout, with radioactive winds sweeping through ruins "
        "and a towering mushroom cloud dominating the sky"
    ),
    "MACHINE": (
        "cold robotic automatons marching in formation, towering AI surveillance systems with glowing "
        "electronic eyes, automated factories with mechanical arms and assembly lines, cybernetic beings "
        "fused with technology, dystopian machinery controlling and monitoring everything"
    ),
    "PANDEMIC": (
        "masked figures wandering through unsanitary streets filled with viral clouds, bio-contaminants, "
        "and microscopic pathogens dominating the air"
    ),
    "FEAR": "oppressive darkness with many red eyes",
    "HOPE": "radiant golden divine light breaking the clouds",
}

OPENING_LINE = (
    "a grand baroque allegorical oil painting of the world, "
    "all forces visible and weighted by real-time power,"
)

STYLE_BASE = (
    "baroque allegorical oil painting, Caravaggio and Rubens influence, dramatic tenebrism with "
    "intense chiaroscuro, dynamic composition with diagonal movement, rich vibrant colors, emotional "
    "expression, thick impasto oil texture, theatrical lighting, detailed human figures, cohesive "
    "single landscape"
)

NEGATIVE_PROMPT = "watermark, text, logo, oversaturated colors, low detail hands, extra limbs"


@dataclass(frozen=True, slots=True)
class WeightedFragment:
    text: str
    weight: float

    def render(self) -> str:
        return f"({self.text}:{to_fixed(self.weight, 2)})"


HUMAN_ELEMENT = WeightedFragment("figures praying, trading, recording the scene", 1.0)


@dataclass(frozen=True, slots=True)
class PromptText:
    prompt: str
    negative: str


@dataclass(frozen=True, slots=True)
class TokenEstimate:
    char_based: int
    word_based: int

    def __add__(self, other: TokenEstimate) -> TokenEstimate:
        return TokenEstimate(
            self.char_based + other.char_based,
            self.word_based + other.word_based,
        )

    def to_dict(self) -> dict[str, int]:
        return {"charBased": self.char_based, "wordBased": self.word_based}


def _cap(caps: Mapping[str, float], symbol: str) -> float:
    value = caps.get(symbol)
    if value is None or not math.isfinite(value):
        return 0.0
    return value


def calculate_dominance_weights(
    caps: Mapping[str, float],
    config: DominanceWeightConfig = DEFAULT_DOMINANCE_CONFIG,
) -> dict[str, float]:
    """
    Relative dominance weight per symbol, in ``[min_weight, max_weight]``.

    If every cap is zero each symbol gets ``min_weight``.
    """
    max_cap = max(_cap(caps, t) for t in config.tokens)
    if max_cap <= 0:
        return {t: config.min_weight for t in config.tokens}

    weights = {}
    for token in config.tokens:
        ratio = _cap(caps, token) / max_cap
        weight = config.min_weight + ratio**config.exponent * (config.max_weight - config.min_weight)
        weights[token] = max(config.min_weight, min(config.max_weight, weight))
    return weights


def to_weighted_fragments(
    caps: Mapping[str, float],
    config: DominanceWeightConfig = DEFAULT_DOMINANCE_CONFIG,
) -> list[WeightedFragment]:
    """
    One fragment per symbol sorted by weight descending, then the human element.

    ``sorted`` is stable, so ties keep symbol order.
    """
    weights = calculate_dominance_weights(caps, config)
    fragments = [
        WeightedFragment(TOKEN_PHRASES[token], weights[token] or config.min_weight)
        for token in config.tokens
    ]
    fragments = sorted(fragments, key=lambda f: f.weight, reverse=True)
    fragments.append(HUMAN_ELEMENT)
    return fragments


def build_sdxl_prompt(caps: Mapping[str, float]) -> PromptText:
    """Full weighted prompt; the negative prompt is embedded and returned separately."""
    fragments = to_weighted_fragments(caps)
    weighted_lines = ",\n".join(f.render() for f in fragments)

    weights_only = [f.weight for f in fragments]
    summary = (
        f"weights summary: sum={to_fixed(sum(weights_only), 3)}, "
        f"min={to_fixed(min(weights_only), 3)}, max={to_fixed(max(weights_only), 3)}"
    )

    prompt = "\n".join(
        [
            OPENING_LINE,
            weighted_lines + ",",
            STYLE_BASE + ",",
            summary + ",",
            f"negative prompt: {NEGATIVE_PROMPT}",
        ]
    )
    return PromptText(prompt=prompt, negative=NEGATIVE_PROMPT)


def build_simple_prompt(caps: Mapping[str, float]) -> PromptText:
    """Unweighted variant for backends without ``(text:weight)`` syntax.

    Each phrase is repeated ``round(weight * 2)`` times (at least once).
    """
    fragments = to_weighted_fragments(caps)
    phrases = ", ".join(
        ", ".join([f.text] * max(1, int(js_round(f.weight * 2)))) for f in fragments
    )
    prompt = " ".join([OPENING_LINE, phrases + ",", STYLE_BASE])
    return PromptText(prompt=prompt, negative=NEGATIVE_PROMPT)


def estimate_token_count(text: str) -> TokenEstimate:
    """Rough tokenizer-free estimate: 4 chars or 0.75 words per token."""
    words = [w for w in re.split(r"\s+", text.strip()) if w]
    return TokenEstimate(
        char_based=math.ceil(len(text) / 4),
        word_based=math.ceil(len(words) / 0.75),
    )


def prompt_token_summary(prompt: str, negative: str) -> dict[str, Any]:
    """Token estimates of a prompt pair, shaped for structured logs."""
    prompt_tokens = estimate_token_count(prompt)
    negative_tokens = estimate_token_count(negative)
    return {
        "prompt": prompt_tokens.to_dict(),
        "negative": negative_tokens.to_dict(),
        "total": (prompt_tokens + negative_tokens).to_dict(),
    }


__all__ = [
    "DominanceWeightConfig",
    "DEFAULT_DOMINANCE_CONFIG",
    "TOKEN_PHRASES",
    "STYLE_BASE",
    "NEGATIVE_PROMPT",
    "HUMAN_ELEMENT",
    "WeightedFragment",
    "PromptText",
    "TokenEstimate",
    "calculate_dominance_weights",
    "to_weighted_fragments",
    "build_sdxl_prompt",
    "build_simple_prompt",
    "estimate_token_count",
    "prompt_token_summary",
]
