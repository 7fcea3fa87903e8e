"""
Tracked market symbols and their static configuration.

Eight symbols, each an allegorical force in the painting. Every symbol has
a token address on the quote source, a total supply used to turn price into
market cap, a normalization window, and the two visual axes it drives.

Tags:
    tokens, symbols, configuration
"""

from __future__ import annotations

from dataclasses import dataclass

SYMBOLS: tuple[str, ...] = ("CO2", "ICE", "FOREST", "NUKE", "MACHINE", "PANDEMIC", "FEAR", "HOPE")

VISUAL_PARAM_KEYS: tuple[str, ...] = (
    "fogDensity",
    "skyTint",
    "reflectivity",
    "blueBalance",
    "vegetationDensity",
    "organicPattern",
    "radiationGlow",
    "debrisIntensity",
    "mechanicalPattern",
    "metallicRatio",
    "fractalDensity",
    "bioluminescence",
    "shadowDepth",
    "redHighlight",
    "lightIntensity",
    "warmHue",
)

DEFAULT_SUPPLY = 1_000_000_000


@dataclass(frozen=True, slots=True)
class NormalizationWindow:
    """Cap range mapped onto [0, 1]."""

    min: float = 0.0
    max: float = 2_000_000_000.0


DEFAULT_NORMALIZATION = NormalizationWindow()


@dataclass(frozen=True, slots=True)
class TokenConfig:
    ticker: str
    address: str
    axes: tuple[str, str]
    supply: float = DEFAULT_SUPPLY
    normalization: NormalizationWindow = DEFAULT_NORMALIZATION


TOKENS: tuple[TokenConfig, ...] = (
    TokenConfig("CO2", "DffFSfxSBKFp93geSsV1LvNMVyqURKVTiGkhA1DsMgcU", ("fogDensity", "skyTint")),
    TokenConfig("ICE", "4p1eFvFLxKPYgYrrv69UD4ATZBAceaTBasoxTXW8tiYa", ("reflectivity", "blueBalance")),
    TokenConfig(
        "FOREST", "CNAuVvVhi9pRsku7Z4UyMJUnd7ystQmR22e7N1WVtgCu", ("vegetationDensity", "organicPattern")
    ),
    TokenConfig("NUKE", "4VSuakewWBzHQLc3Z4Lpf2sCVLEDx6B1cXhMeWyT8Uap", ("radiationGlow", "debrisIntensity")),
    TokenConfig(
        "MACHINE", "FNWaFsgdCu4jFhvsF4cwYFfz2sYcM9U1gvXbBLPvdA5Z", ("mechanicalPattern", "metallicRatio")
    ),
    TokenConfig(
        "PANDEMIC", "2WLeZcqGnSu69oqHxLtpubbHP9RWwagjM7ny4RBF7sbe", ("fractalDensity", "bioluminescence")
    ),
    TokenConfig("FEAR", "CmfGCD7MFFL8P5TdeCoPMc9jbu18T88XEesv7ZzR7FGX", ("shadowDepth", "redHighlight")),
    TokenConfig("HOPE", "9CQSWPqP69h1gVnqpQVYsQBByzP9Tyo6dgNqcjyCmW18", ("lightIntensity", "warmHue")),
)

TOKEN_CONFIG_MAP: dict[str, TokenConfig] = {token.ticker: token for token in TOKENS}

__all__ = [
    "SYMBOLS",
    "VISUAL_PARAM_KEYS",
    "DEFAULT_SUPPLY",
    "NormalizationWindow",
    "TokenConfig",
    "TOKENS",
    "TOKEN_CONFIG_MAP",
]
