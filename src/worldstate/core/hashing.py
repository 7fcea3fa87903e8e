"""
Deterministic content hashing for the minute pipeline.

Provides the canonical serialization and the SHA-256-derived identifiers that
make a tick idempotent and its artifact reproducible. Hash values are used as
the idempotence gate (rounded map hash), as the visual fingerprint (params
hash), as the generation seed, and inside the canonical artifact filename.

Manifesto:
    The pipeline publishes a new world state only when something meaningful
    changed, and it must be able to prove what produced an artifact:
    - **Canonical:** Same data → same bytes → same hash, in any process
    - **Key-order independent:** Maps are serialized with sorted keys
    - **Quantized:** Noise below the chosen precision never changes a hash
    - **Cross-language:** Output is byte-identical to the JavaScript
      implementation (JSON number formatting, half-up rounding)

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                    Hash Derivation Chain                     │
        └─────────────────────────────────────────────────────────────┘

        RoundedCapMap ──stable_serialize──► sha256 ──[:16]──► roundedMapHash
                                                              (skip gate)

        VisualParams ──"key:0.123|..."────► sha256 ──[:8]───► paramsHash

        "minuteBucket|paramsHash" ────────► sha256 ──[:12]──► seed

        (minuteBucket, paramsHash, seed) ─► DOOM_{12 digits}_{8 hex}_{12 hex}.webp

Examples:
    >>> stable_serialize({"b": 1, "a": [1.5, None]})
    '{"a":[1.5,null],"b":1}'
    >>> len(rounded_map_hash({"CO2": 1300000.0}))
    16
    >>> canonical_filename("2025-11-14T12:34", "ABCDEF12", "0123456789ab")
    'DOOM_202511141234_abcdef12_0123456789ab.webp'

Tags:
    hashing, idempotency, reproducibility, worldstate
"""

from __future__ import annotations

import hashlib
import json
import re
from collections.abc import Mapping
from typing import Any

from worldstate.core.numeric import clamp01, js_number, round_half_up, to_fixed

FILENAME_PREFIX = "DOOM"
FILENAME_EXTENSION = "webp"
PARAMS_QUANTIZE_DECIMALS = 3

ROUNDED_MAP_HASH_LENGTH = 16
PARAMS_HASH_LENGTH = 8
SEED_LENGTH = 12

_NON_DIGIT = re.compile(r"\D")


def stable_serialize(value: Any, *, sort_keys: bool = True) -> str:
    """
    Canonical JSON-compatible text with lexicographically sorted keys.

    With ``sort_keys=False`` mapping order is kept, matching
    ``JSON.stringify`` of the same object.

    Numbers use JavaScript formatting (``1300000.0`` → ``1300000``) so the
    preimage matches ``JSON.stringify`` of the same data.

    Args:
        value: Nested mappings, sequences, strings, numbers, bools, None
        sort_keys: Sort mapping keys (hash preimages) or keep insertion order

    Returns:
        Canonical string, used as the hashing preimage and for audit logs

    Raises:
        TypeError: For values with no canonical form (sets, objects)
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return js_number(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, Mapping):
        entries = [(str(k), v) for k, v in value.items()]
        if sort_keys:
            entries.sort()
        body = ",".join(
            f"{json.dumps(key, ensure_ascii=False)}:{stable_serialize(val, sort_keys=sort_keys)}"
            for key, val in entries
        )
        return "{" + body + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(stable_serialize(item, sort_keys=sort_keys) for item in value) + "]"
    raise TypeError(f"Cannot serialize {type(value).__name__} canonically")


def sha256_hex(text: str) -> str:
    """Full lowercase SHA-256 hex digest of UTF-8 text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def rounded_map_hash(rounded_map: Mapping[str, float]) -> str:
    """
    16-hex hash of a rounded market-cap map.

    This is the idempotence gate: two ticks with the same rounded map
    produce the same hash and the second one is skipped.
    """
    return sha256_hex(stable_serialize(rounded_map))[:ROUNDED_MAP_HASH_LENGTH]


def quantize_param(value: float) -> float:
    """Clamp to [0,1] and round half-up to 3 decimals."""
    return round_half_up(clamp01(value), PARAMS_QUANTIZE_DECIMALS)


def params_hash(visual_params: Mapping[str, float]) -> str:
    """
    8-hex hash of a visual parameter vector.

    Preimage is ``key:value`` pairs sorted by key, values quantized to 3
    decimals and printed with exactly 3 fraction digits, joined by ``|``.
    Changes below the 3rd decimal never alter the hash.
    """
    serialized = "|".join(
        f"{key}:{to_fixed(quantize_param(value), PARAMS_QUANTIZE_DECIMALS)}"
        for key, value in sorted(visual_params.items())
    )
    return sha256_hex(serialized)[:PARAMS_HASH_LENGTH]


def minute_seed(minute_bucket: str, params_hash_value: str) -> str:
    """12-hex seed of ``minuteBucket|lowercase(paramsHash)``."""
    return sha256_hex(f"{minute_bucket}|{params_hash_value.lower()}")[:SEED_LENGTH]


def canonical_filename(
    minute_bucket: str,
    params_hash_value: str,
    seed: str,
    *,
    prefix: str = FILENAME_PREFIX,
    extension: str = FILENAME_EXTENSION,
) -> str:
    """
    ``PREFIX_{12-digit-minute}_{8-hex}_{12-hex}.{ext}``.

    All non-digit characters are stripped from the minute bucket and the
    result truncated to 12 digits (``YYYYMMDDHHmm``); hashes are lowercased.
    """
    minute_digits = _NON_DIGIT.sub("", minute_bucket)[:12]
    return f"{prefix}_{minute_digits}_{params_hash_value.lower()}_{seed.lower()}.{extension}"


__all__ = [
    "FILENAME_PREFIX",
    "FILENAME_EXTENSION",
    "stable_serialize",
    "sha256_hex",
    "rounded_map_hash",
    "quantize_param",
    "params_hash",
    "minute_seed",
    "canonical_filename",
]
