"""
Deterministic mapping from normalized caps to visual parameters.

Every parameter is driven by exactly one symbol axis through one of two
closed forms, both clamped to [0, 1] and non-decreasing in their input:

    ease(v, p)        = clamp01(clamp01(v) ** p)       baseline 0
    lift(v, base, s)  = clamp01(base + clamp01(v) * s)  baseline ``base``

Architecture:
    ::

        CO2      → fogDensity=ease(.65)        skyTint=lift(.15, .75)
        ICE      → reflectivity=ease(.7)       blueBalance=lift(.4, .5)
        FOREST   → vegetationDensity=ease(.8)  organicPattern=lift(.3, .6)
        NUKE     → radiationGlow=ease(.6)      debrisIntensity=lift(.2, .75)
        MACHINE  → mechanicalPattern=v         metallicRatio=lift(.3, .6)
        PANDEMIC → fractalDensity=v            bioluminescence=lift(.2, .7)
        FEAR     → shadowDepth=ease(.8)        redHighlight=lift(.3, .6)
        HOPE     → lightIntensity=ease(.9)     warmHue=lift(.4, .5)

Tags:
    mapping, visual-parameters, pure
"""

from __future__ import annotations

from collections.abc import Callable, Mapping

from worldstate.core.numeric import clamp01

VisualParams = dict[str, float]


def ease(value: float, power: float) -> float:
    return clamp01(clamp01(value) ** power)


def lift(value: float, base: float, scale: float) -> float:
    return clamp01(base + clamp01(value) * scale)


def _ease(power: float) -> Callable[[float], float]:
    return lambda v: ease(v, power)


def _lift(base: float, scale: float) -> Callable[[float], float]:
    return lambda v: lift(v, base, scale)


# parameter -> (symbol, rule); order matches VISUAL_PARAM_KEYS
PARAMETER_RULES: dict[str, tuple[str, Callable[[float], float]]] = {
    "fogDensity": ("CO2", _ease(0.65)),
    "skyTint": ("CO2", _lift(0.15, 0.75)),
    "reflectivity": ("ICE", _ease(0.7)),
    "blueBalance": ("ICE", _lift(0.4, 0.5)),
    "vegetationDensity": ("FOREST", _ease(0.8)),
    "organicPattern": ("FOREST", _lift(0.3, 0.6)),
    "radiationGlow": ("NUKE", _ease(0.6)),
    "debrisIntensity": ("NUKE", _lift(0.2, 0.75)),
    "mechanicalPattern": ("MACHINE", clamp01),
    "metallicRatio": ("MACHINE", _lift(0.3, 0.6)),
    "fractalDensity": ("PANDEMIC", clamp01),
    "bioluminescence": ("PANDEMIC", _lift(0.2, 0.7)),
    "shadowDepth": ("FEAR", _ease(0.8)),
    "redHighlight": ("FEAR", _lift(0.3, 0.6)),
    "lightIntensity": ("HOPE", _ease(0.9)),
    "warmHue": ("HOPE", _lift(0.4, 0.5)),
}


def map_to_visual_params(normalized: Mapping[str, float]) -> VisualParams:
    """Pure and total: absent symbols are treated as 0."""
    return {
        key: rule(normalized.get(symbol, 0.0) or 0.0)
        for key, (symbol, rule) in PARAMETER_RULES.items()
    }


def baseline_visual_params() -> VisualParams:
    """Parameters when every symbol is at zero."""
    return map_to_visual_params({})


__all__ = [
    "VisualParams",
    "ease",
    "lift",
    "PARAMETER_RULES",
    "map_to_visual_params",
    "baseline_visual_params",
]
