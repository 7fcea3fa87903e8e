"""Tests for per-tick prompt composition."""

import re

import pytest

from worldstate.core.errors import InternalError
from worldstate.core.timestamps import FixedClock
from worldstate.domain.archive import is_valid_archive_filename
from worldstate.domain.market import round_cap_map
from worldstate.domain.prompt import NEGATIVE_PROMPT
from worldstate.ops.prompt import IMAGE_FORMAT, IMAGE_HEIGHT, IMAGE_WIDTH, PromptComposer


class BrokenClock:
    def minute_bucket(self) -> str:
        raise RuntimeError("clock unavailable")


class TestCompose:
    def test_fields(self, clock, scenario_caps):
        composition = PromptComposer(clock).compose(round_cap_map(scenario_caps)).unwrap()

        assert composition.minute_bucket == "2025-11-14T12:34"
        assert re.fullmatch(r"[0-9a-f]{12}", composition.seed)
        assert re.fullmatch(r"[0-9a-f]{8}", composition.params_hash)
        assert composition.filename == (
            f"DOOM_202511141234_{composition.params_hash}_{composition.seed}.webp"
        )
        assert is_valid_archive_filename(composition.filename)
        assert (composition.width, composition.height, composition.format) == (
            IMAGE_WIDTH,
            IMAGE_HEIGHT,
            IMAGE_FORMAT,
        )
        assert composition.size == "1024x1024"
        assert composition.negative_text == NEGATIVE_PROMPT
        assert all(0.0 <= v <= 1.0 for v in composition.visual_params.values())

    def test_deterministic(self, clock, scenario_caps):
        rounded = round_cap_map(scenario_caps)
        assert PromptComposer(clock).compose(rounded).unwrap() == PromptComposer(clock).compose(rounded).unwrap()

    def test_seed_varies_by_minute_only(self, scenario_caps):
        rounded = round_cap_map(scenario_caps)
        a = PromptComposer(FixedClock("2025-11-14T12:34")).compose(rounded).unwrap()
        b = PromptComposer(FixedClock("2025-11-14T12:35")).compose(rounded).unwrap()

        assert a.params_hash == b.params_hash
        assert a.prompt_text == b.prompt_text
        assert a.seed != b.seed
        assert a.filename != b.filename

    def test_params_hash_follows_market(self, clock, scenario_caps):
        shifted = dict(scenario_caps, MACHINE=10.0)
        a = PromptComposer(clock).compose(round_cap_map(scenario_caps)).unwrap()
        b = PromptComposer(clock).compose(round_cap_map(shifted)).unwrap()
        assert a.params_hash != b.params_hash

    def test_clock_failure(self, scenario_caps):
        result = PromptComposer(BrokenClock()).compose(round_cap_map(scenario_caps))
        assert isinstance(result.error, InternalError)
        assert result.error.context.stage == "prompt"

    @pytest.mark.parametrize("caps", [{}, {"CO2": 0.0}])
    def test_sparse_map(self, clock, caps):
        assert PromptComposer(clock).compose(caps).is_ok()
