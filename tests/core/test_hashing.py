"""Tests for deterministic content hashing."""

import re

import pytest

from worldstate.core.hashing import (
    canonical_filename,
    minute_seed,
    params_hash,
    quantize_param,
    rounded_map_hash,
    sha256_hex,
    stable_serialize,
)
from worldstate.domain.archive import ARCHIVE_FILENAME_PATTERN, extract_id_from_filename
from worldstate.domain.market import round_cap_map
from worldstate.domain.tokens import VISUAL_PARAM_KEYS

HEX = re.compile(r"^[0-9a-f]+$")


def _vector(value: float = 0.5, **overrides: float) -> dict[str, float]:
    vector = {key: value for key in VISUAL_PARAM_KEYS}
    vector.update(overrides)
    return vector


class TestStableSerialize:
    def test_sorted_keys(self):
        assert stable_serialize({"b": 1, "a": 2}) == '{"a":2,"b":1}'

    def test_key_order_independent(self):
        assert stable_serialize({"x": {"b": 1, "a": 2}, "y": 3}) == stable_serialize(
            {"y": 3, "x": {"a": 2, "b": 1}}
        )

    def test_insertion_order_kept_without_sorting(self):
        assert stable_serialize({"b": 1.0, "a": {"d": 2, "c": 3}}, sort_keys=False) == '{"b":1,"a":{"d":2,"c":3}}'

    def test_scalars(self):
        assert stable_serialize([None, True, False, "s", 1.0, 0.25]) == '[null,true,false,"s",1,0.25]'

    def test_unicode_kept(self):
        assert stable_serialize({"k": "é"}) == '{"k":"é"}'

    def test_rejects_unserializable(self):
        with pytest.raises(TypeError):
            stable_serialize({1, 2})


class TestRoundedMapHash:
    def test_shape(self):
        value = rounded_map_hash({"CO2": 1300000.0})
        assert len(value) == 16
        assert HEX.match(value)

    def test_prefix_of_sha256(self):
        caps = {"CO2": 1300000.0, "ICE": 2.5}
        assert rounded_map_hash(caps) == sha256_hex(stable_serialize(caps))[:16]

    def test_idempotent(self):
        caps = {"CO2": 1300000.0, "ICE": 200000.0}
        assert rounded_map_hash(caps) == rounded_map_hash(dict(reversed(list(caps.items()))))

    def test_stable_under_noise_beyond_fourth_decimal(self):
        raw_a = {"CO2": 1300000.00001, "ICE": 2.00001}
        raw_b = {"CO2": 1300000.00004, "ICE": 2.00004}
        assert round_cap_map(raw_a) == round_cap_map(raw_b)
        assert rounded_map_hash(round_cap_map(raw_a)) == rounded_map_hash(round_cap_map(raw_b))

    def test_sensitive_at_fourth_decimal(self):
        assert rounded_map_hash(round_cap_map({"ICE": 2.0001})) != rounded_map_hash(
            round_cap_map({"ICE": 2.0002})
        )


class TestParamsHash:
    def test_shape(self):
        value = params_hash(_vector())
        assert len(value) == 8
        assert HEX.match(value)

    def test_quantize_param(self):
        assert quantize_param(0.1234) == 0.123
        assert quantize_param(1.7) == 1.0
        assert quantize_param(-0.2) == 0.0

    def test_stable_below_third_decimal(self):
        assert params_hash(_vector(fogDensity=0.5)) == params_hash(_vector(fogDensity=0.5004))

    def test_sensitive_at_third_decimal(self):
        assert params_hash(_vector(fogDensity=0.5)) != params_hash(_vector(fogDensity=0.501))

    def test_key_order_independent(self):
        vector = _vector(warmHue=0.9)
        assert params_hash(vector) == params_hash(dict(reversed(list(vector.items()))))


class TestMinuteSeed:
    def test_shape(self):
        seed = minute_seed("2025-11-14T12:34", "abcdef12")
        assert len(seed) == 12
        assert HEX.match(seed)

    def test_hash_case_insensitive(self):
        assert minute_seed("2025-11-14T12:34", "ABCDEF12") == minute_seed("2025-11-14T12:34", "abcdef12")

    def test_changes_with_either_input(self):
        base = minute_seed("2025-11-14T12:34", "abcdef12")
        assert minute_seed("2025-11-14T12:35", "abcdef12") != base
        assert minute_seed("2025-11-14T12:34", "abcdef13") != base


class TestCanonicalFilename:
    def test_format(self):
        assert (
            canonical_filename("2025-11-14T12:34", "ABCDEF12", "0123456789AB")
            == "DOOM_202511141234_abcdef12_0123456789ab.webp"
        )

    def test_round_trip_with_id(self):
        vp_hash = params_hash(_vector())
        seed = minute_seed("2025-11-14T12:34", vp_hash)
        filename = canonical_filename("2025-11-14T12:34", vp_hash, seed)

        assert ARCHIVE_FILENAME_PATTERN.match(filename)
        assert extract_id_from_filename(filename) == f"DOOM_202511141234_{vp_hash}_{seed}"

    def test_minute_digits_truncated_to_twelve(self):
        filename = canonical_filename("2025-11-14T12:34:56Z", "abcdef12", "0123456789ab")
        assert filename.startswith("DOOM_202511141234_")
