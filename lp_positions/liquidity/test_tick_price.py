from __future__ import annotations

import pytest

from lp_positions.core.utils.tick_math import tick_space_limits
from lp_positions.liquidity.tick_price import (
    INFINITY_SYMBOL,
    ZERO_PRICE,
    Denomination,
    calculate_range_percentage,
    choose_denomination,
    is_tick_at_limit,
    is_valid_tick_range,
    price_decimals,
    price_to_tick,
    tick_to_price,
)

TOKEN0 = "WETH"
TOKEN1 = "WBTC"
SPACING = 60
MIN_TICK, MAX_TICK = tick_space_limits(SPACING)


def _to_price(tick, base_token=TOKEN1, **kwargs):
    return tick_to_price(
        tick,
        0,
        "1",
        base_token,
        TOKEN0,
        TOKEN1,
        min_tick=MIN_TICK,
        max_tick=MAX_TICK,
        **kwargs,
    )


def _to_tick(price, is_upper_bound, base_token=TOKEN1, spacing=SPACING):
    min_tick, max_tick = tick_space_limits(spacing)
    return price_to_tick(
        price,
        is_upper_bound,
        base_token,
        spacing,
        min_tick,
        max_tick,
        0,
        "1",
        token0_symbol=TOKEN0,
    )


class TestDenomination:
    def test_base_token_selects_denomination(self):
        assert Denomination.for_base_token(TOKEN0, TOKEN0) is Denomination.TOKEN0
        assert Denomination.for_base_token(TOKEN1, TOKEN0) is Denomination.TOKEN1
        assert Denomination.TOKEN0.inverted
        assert not Denomination.TOKEN1.inverted

    def test_stablecoin_is_always_the_quote(self):
        assert choose_denomination("WETH", "USDC") == "USDC"
        assert choose_denomination("USDC", "WETH") == "USDC"

    def test_small_pool_price_quotes_in_token0(self):
        assert choose_denomination("WBTC", "WETH", "0.05") == "WBTC"
        assert choose_denomination("WBTC", "WETH", "20") == "WETH"
        assert choose_denomination("WBTC", "WETH") == "WETH"

    def test_price_decimals(self):
        assert price_decimals("USDC") == 2
        assert price_decimals("USDC", is_stable_pool=True) == 6
        assert price_decimals("WETH", display_decimals=4) == 4
        assert price_decimals("WETH") == 6


class TestTickToPrice:
    def test_pool_tick_is_pool_price(self):
        assert _to_price(0) == "1.000000"

    def test_price_moves_with_tick(self):
        assert float(_to_price(1000)) == pytest.approx(1.0001**1000, abs=1e-6)
        assert float(_to_price(1000, base_token=TOKEN0)) == pytest.approx(
            1.0001**-1000, abs=1e-6
        )

    def test_limit_ticks_render_sentinels(self):
        assert _to_price(MAX_TICK) == INFINITY_SYMBOL
        assert _to_price(MIN_TICK) == ZERO_PRICE

    def test_limit_sentinels_flip_when_inverted(self):
        assert _to_price(MIN_TICK, base_token=TOKEN0) == INFINITY_SYMBOL
        assert _to_price(MAX_TICK, base_token=TOKEN0) == ZERO_PRICE

    def test_tiny_price_renders_threshold(self):
        assert _to_price(-200000) == "<0.000001"

    def test_usd_quote_uses_two_decimals(self):
        kwargs = dict(min_tick=MIN_TICK, max_tick=MAX_TICK)
        assert tick_to_price(0, 0, "1", "USDC", "WETH", "USDC", **kwargs) == "1.00"
        assert (
            tick_to_price(
                0, 0, "1", "USDC", "USDT", "USDC", is_stable_pool=True, **kwargs
            )
            == "1.000000"
        )

    def test_missing_pool_state_returns_none(self):
        kwargs = dict(min_tick=MIN_TICK, max_tick=MAX_TICK)
        assert tick_to_price(60, None, "1", TOKEN1, TOKEN0, TOKEN1, **kwargs) is None
        assert tick_to_price(60, 0, None, TOKEN1, TOKEN0, TOKEN1, **kwargs) is None
        assert tick_to_price(60, 0, "0", TOKEN1, TOKEN0, TOKEN1, **kwargs) is None


class TestPriceToTick:
    @pytest.mark.parametrize("base_token", [TOKEN0, TOKEN1])
    @pytest.mark.parametrize("is_upper_bound", [True, False])
    def test_displayed_price_round_trips(self, base_token, is_upper_bound):
        for tick in range(-19980, 20000, 420):
            price = _to_price(tick, base_token=base_token)
            assert _to_tick(price, is_upper_bound, base_token=base_token) == tick

    @pytest.mark.parametrize("base_token", ["USDT", "USDC"])
    @pytest.mark.parametrize("is_upper_bound", [True, False])
    def test_stable_pool_round_trips_at_unit_spacing(
        self, base_token, is_upper_bound
    ):
        min_tick, max_tick = tick_space_limits(1)
        for tick in range(-50, 51):
            price = tick_to_price(
                tick,
                0,
                "1",
                base_token,
                "USDT",
                "USDC",
                min_tick=min_tick,
                max_tick=max_tick,
                is_stable_pool=True,
            )
            assert len(price.split(".")[1]) == 6
            result = price_to_tick(
                price,
                is_upper_bound,
                base_token,
                1,
                min_tick,
                max_tick,
                0,
                "1",
                token0_symbol="USDT",
            )
            assert result == tick, (tick, price)

    @pytest.mark.parametrize("is_upper_bound", [True, False])
    def test_usd_quote_round_trips_at_two_decimals(self, is_upper_bound):
        min_tick, max_tick = tick_space_limits(1)
        pool_tick = 78240
        for tick in range(pool_tick - 500, pool_tick + 501, 7):
            price = tick_to_price(
                tick,
                pool_tick,
                "2500",
                "USDC",
                "WETH",
                "USDC",
                min_tick=min_tick,
                max_tick=max_tick,
            )
            assert len(price.split(".")[1]) == 2
            result = price_to_tick(
                price,
                is_upper_bound,
                "USDC",
                1,
                min_tick,
                max_tick,
                pool_tick,
                "2500",
                token0_symbol="WETH",
            )
            assert result == tick, (tick, price)

    def test_rounds_away_from_range_before_snapping(self):
        assert _to_tick("1.00005", True, spacing=1) == 1
        assert _to_tick("1.00005", False, spacing=1) == 0

    def test_result_is_aligned_and_clamped(self):
        tick = _to_tick("1.07", True)
        assert tick % SPACING == 0
        assert _to_tick("1e300", True) == MAX_TICK

    def test_infinity_inputs(self):
        assert _to_tick(INFINITY_SYMBOL, True) == MAX_TICK
        assert _to_tick("Infinity", True) == MAX_TICK
        assert _to_tick(INFINITY_SYMBOL, True, base_token=TOKEN0) == MIN_TICK

    def test_zero_lower_bound_is_open_end(self):
        assert _to_tick("0", False) == MIN_TICK
        assert _to_tick("0", False, base_token=TOKEN0) == MAX_TICK
        assert _to_tick("0", True) is None

    @pytest.mark.parametrize("price", [None, "", "   ", "abc", "-1"])
    def test_unparsable_price_returns_none(self, price):
        assert _to_tick(price, True) is None

    def test_missing_pool_state_returns_none(self):
        tick = price_to_tick(
            "1.5",
            True,
            TOKEN1,
            SPACING,
            MIN_TICK,
            MAX_TICK,
            None,
            "1",
            token0_symbol=TOKEN0,
        )
        assert tick is None


def test_tick_range_helpers():
    assert is_tick_at_limit(MIN_TICK, MIN_TICK, MAX_TICK) == (True, False)
    assert is_tick_at_limit(MAX_TICK, MIN_TICK, MAX_TICK) == (False, True)
    assert is_valid_tick_range(-60, 60, 60)
    assert not is_valid_tick_range(60, 60, 60)
    assert not is_valid_tick_range(-30, 60, 60)


def test_calculate_range_percentage():
    lower_pct, upper_pct = calculate_range_percentage(-1440, 1440, 0)
    assert upper_pct == pytest.approx(15.49, abs=0.01)
    assert 0 < lower_pct < upper_pct
