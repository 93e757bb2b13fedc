from __future__ import annotations

import pytest

from lp_positions.core.constants import SDK_MAX_TICK, SDK_MIN_TICK
from lp_positions.core.utils.tick_math import (
    amounts_for_liquidity,
    ceil_to_spacing,
    clamp_tick,
    floor_to_spacing,
    liquidity_for_amount0,
    nearest_usable_tick,
    sqrt_price_x96_from_tick,
    tick_delta_for_percentage,
    tick_space_limits,
)


def test_spacing_alignment():
    assert floor_to_spacing(-1398, 60) == -1440
    assert ceil_to_spacing(1398, 60) == 1440
    assert floor_to_spacing(120, 60) == 120
    assert ceil_to_spacing(-61, 60) == -60
    assert nearest_usable_tick(89, 60) == 60
    assert nearest_usable_tick(91, 60) == 120


def test_clamp_tick():
    assert clamp_tick(-900000, -887220, 887220) == -887220
    assert clamp_tick(900000, -887220, 887220) == 887220
    assert clamp_tick(5, -887220, 887220) == 5


def test_tick_space_limits_truncate_toward_zero():
    assert tick_space_limits(1) == (SDK_MIN_TICK, SDK_MAX_TICK)
    assert tick_space_limits(60) == (-887220, 887220)
    assert tick_space_limits(200) == (-887200, 887200)
    with pytest.raises(ValueError):
        tick_space_limits(0)


def test_tick_delta_for_percentage():
    assert tick_delta_for_percentage(0.15) == 1398
    assert tick_delta_for_percentage(0.01) == 100


def test_sqrt_price_from_tick_matches_known_values():
    assert sqrt_price_x96_from_tick(0) == 2**96
    assert sqrt_price_x96_from_tick(SDK_MIN_TICK) == 4295128739
    assert sqrt_price_x96_from_tick(SDK_MAX_TICK) == pytest.approx(
        1461446703485210103287273052203988822378723970342, rel=1e-12
    )
    with pytest.raises(ValueError):
        sqrt_price_x96_from_tick(SDK_MAX_TICK + 1)


def test_amounts_for_symmetric_range_at_parity():
    sqrt_p = sqrt_price_x96_from_tick(0)
    sqrt_a = sqrt_price_x96_from_tick(-60)
    sqrt_b = sqrt_price_x96_from_tick(60)

    liquidity = liquidity_for_amount0(sqrt_p, sqrt_b, 10**18)
    amount0, amount1 = amounts_for_liquidity(sqrt_p, sqrt_a, sqrt_b, liquidity)

    assert amount0 == pytest.approx(10**18, rel=1e-9)
    assert amount1 == pytest.approx(amount0, rel=1e-6)


def test_amounts_outside_range_are_one_sided():
    sqrt_a = sqrt_price_x96_from_tick(-60)
    sqrt_b = sqrt_price_x96_from_tick(60)

    below = amounts_for_liquidity(sqrt_price_x96_from_tick(-120), sqrt_a, sqrt_b, 10**18)
    above = amounts_for_liquidity(sqrt_price_x96_from_tick(120), sqrt_a, sqrt_b, 10**18)

    assert below[0] > 0 and below[1] == 0
    assert above[0] == 0 and above[1] > 0
