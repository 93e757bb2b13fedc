from __future__ import annotations

import pytest

from lp_positions.core.constants import SDK_MAX_TICK, SDK_MIN_TICK
from lp_positions.core.errors import InvalidInput, RangeTooNarrow
from lp_positions.core.utils.tick_math import tick_space_limits
from lp_positions.liquidity.range_presets import (
    FULL_RANGE,
    PERCENTAGE_PRESETS,
    Percentage,
    RangeSelection,
    default_viewport_percentage,
    detect_preset,
    parse_preset,
    preset_display_label,
    preset_options,
    preset_to_range,
)

MIN_60, MAX_60 = tick_space_limits(60)
MIN_200, MAX_200 = tick_space_limits(200)


class TestPresetToRange:
    def test_percentage_preset_around_pool_tick(self):
        assert preset_to_range(Percentage(15), 0, 60, MIN_60, MAX_60) == (-1440, 1440)
        assert preset_to_range(Percentage(1), 0, 60, MIN_60, MAX_60) == (-120, 120)

    def test_full_range_uses_limits(self):
        assert preset_to_range(FULL_RANGE, 12345, 60, MIN_60, MAX_60) == (
            MIN_60,
            MAX_60,
        )

    def test_bounds_are_aligned(self):
        tick_lower, tick_upper = preset_to_range(
            Percentage(3), 1234, 60, MIN_60, MAX_60
        )
        assert tick_lower % 60 == 0 and tick_upper % 60 == 0
        assert tick_lower <= 1234 <= tick_upper

    def test_collapsed_range_raises(self):
        with pytest.raises(RangeTooNarrow) as exc_info:
            preset_to_range(Percentage(0.1), SDK_MAX_TICK, 200, MIN_200, MAX_200)
        assert exc_info.value.details["tick_spacing"] == 200

    def test_non_positive_percentage_is_invalid(self):
        with pytest.raises(InvalidInput):
            preset_to_range(Percentage(0), 0, 60, MIN_60, MAX_60)


class TestDetectPreset:
    @pytest.mark.parametrize("preset", PERCENTAGE_PRESETS)
    def test_detects_every_preset_on_fine_grid(self, preset):
        min_tick, max_tick = tick_space_limits(1)
        bounds = preset_to_range(preset, 500, 1, min_tick, max_tick)
        assert detect_preset(*bounds, 500, 1, min_tick, max_tick) == preset

    def test_full_range(self):
        assert detect_preset(MIN_60, MAX_60, 0, 60, MIN_60, MAX_60) == FULL_RANGE

    def test_custom_range(self):
        assert detect_preset(-600, 1440, 0, 60, MIN_60, MAX_60) is None

    def test_colliding_presets_prefer_current(self):
        # ±0.1% and ±0.5% both align to (-60, 60) at spacing 60
        assert detect_preset(-60, 60, 0, 60, MIN_60, MAX_60) == Percentage(0.1)
        assert detect_preset(
            -60, 60, 0, 60, MIN_60, MAX_60, current=Percentage(0.5)
        ) == Percentage(0.5)

    def test_pool_tick_move_invalidates_match(self):
        assert detect_preset(-1440, 1440, 600, 60, MIN_60, MAX_60) is None


class TestLabels:
    def test_parse_preset(self):
        assert parse_preset("±15%") == Percentage(15)
        assert parse_preset("± 0.5 %") == Percentage(0.5)
        assert parse_preset("full range") == FULL_RANGE
        assert parse_preset("bogus") is None
        assert parse_preset(None) is None

    def test_percentage_label(self):
        assert Percentage(15).label == "±15%"
        assert Percentage(0.5).label == "±0.5%"

    def test_display_labels(self):
        assert preset_display_label(None, False) == "Select Range"
        assert preset_display_label(FULL_RANGE, False) == "Full Range"
        assert preset_display_label(Percentage(15), False) == "Wide"
        assert preset_display_label(Percentage(3), False) == "Narrow"
        assert preset_display_label(Percentage(1), True) == "Wide"
        assert preset_display_label(Percentage(0.1), True) == "Narrow"
        assert preset_display_label(Percentage(8), True) == "Custom"

    def test_options_depend_on_pool_type(self):
        assert Percentage(0.1) in preset_options(True)
        assert Percentage(15) in preset_options(False)
        assert default_viewport_percentage(True) == Percentage(3)
        assert default_viewport_percentage(False) == Percentage(15)


class TestRangeSelection:
    def test_apply_preset(self):
        selection = RangeSelection(tick_spacing=60, min_tick=MIN_60, max_tick=MAX_60)

        assert selection.apply_preset(Percentage(15), 0) is None

        assert selection.range == (-1440, 1440)
        assert selection.preset == Percentage(15)
        assert selection.label == "Wide"

    def test_too_narrow_preset_keeps_previous_range(self):
        selection = RangeSelection(
            tick_spacing=200, min_tick=MIN_200, max_tick=MAX_200
        )
        selection.apply_preset(FULL_RANGE, SDK_MAX_TICK)

        notice = selection.apply_preset(Percentage(0.1), SDK_MAX_TICK)

        assert isinstance(notice, RangeTooNarrow)
        assert selection.range == (MIN_200, MAX_200)
        assert selection.is_full_range

    def test_manual_range_is_custom(self):
        selection = RangeSelection(tick_spacing=60, min_tick=MIN_60, max_tick=MAX_60)
        selection.apply_preset(Percentage(15), 0)

        selection.set_range(-600, 600)

        assert selection.preset is None
        assert selection.label == "Custom"

    def test_manual_range_matching_preset_is_detected(self):
        selection = RangeSelection(tick_spacing=60, min_tick=MIN_60, max_tick=MAX_60)
        selection.update_pool_tick(0)

        selection.set_range(-120, 120)

        assert selection.preset == Percentage(1)

    def test_applied_preset_survives_collision(self):
        selection = RangeSelection(tick_spacing=60, min_tick=MIN_60, max_tick=MAX_60)
        selection.apply_preset(Percentage(0.5), 0)

        selection.update_pool_tick(0)

        assert selection.preset == Percentage(0.5)

    def test_set_range_validation(self):
        selection = RangeSelection(tick_spacing=60, min_tick=MIN_60, max_tick=MAX_60)
        with pytest.raises(InvalidInput):
            selection.set_range(60, 60)
        with pytest.raises(InvalidInput):
            selection.set_range(-95, 37)
        with pytest.raises(InvalidInput):
            selection.set_range(0, 30)
        with pytest.raises(InvalidInput):
            selection.set_range(MIN_60 - 60, 0)
        with pytest.raises(InvalidInput):
            selection.set_range(0, MAX_60 + 60)
        assert selection.range is None

    def test_set_range_accepts_unaligned_limits(self):
        selection = RangeSelection(
            tick_spacing=60, min_tick=SDK_MIN_TICK, max_tick=SDK_MAX_TICK
        )

        selection.set_range(SDK_MIN_TICK, 600)
        assert selection.range == (SDK_MIN_TICK, 600)

        with pytest.raises(RangeTooNarrow):
            selection.set_range(SDK_MIN_TICK, -887220)

    def test_reset(self):
        selection = RangeSelection(tick_spacing=60, min_tick=MIN_60, max_tick=MAX_60)
        selection.apply_preset(Percentage(3), 0)

        selection.reset()

        assert selection.range is None
        assert selection.label == "Select Range"
