"""Tick <-> display price conversion.

Prices are derived relative to the live pool (``pool_tick``, ``pool_price``) so
token decimal differences are already folded into ``pool_price``:

    display = pool_price * 1.0001 ** (tick - pool_tick)          (quoted in token1)
    display = 1 / (pool_price * 1.0001 ** (tick - pool_tick))    (quoted in token0)
"""

from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation
from enum import StrEnum

from lp_positions.core.constants import USD_PEGGED_SYMBOLS
from lp_positions.core.utils.formatting import format_price, threshold_label
from lp_positions.core.utils.tick_math import (
    LOG_TICK_BASE,
    clamp_tick,
    nearest_usable_tick,
)

INFINITY_SYMBOL = "∞"
ZERO_PRICE = "0"
INFINITY_INPUTS = frozenset({"∞", "infinity", "infinite"})

USD_PRICE_DECIMALS = 2
STABLE_POOL_USD_PRICE_DECIMALS = 6
DEFAULT_PRICE_DECIMALS = 6

# floor for the exact-tick tolerance, in ticks
_TICK_EPSILON = 1e-6


class Denomination(StrEnum):
    """Which pool token the displayed price is quoted in."""

    TOKEN0 = "TOKEN0"
    TOKEN1 = "TOKEN1"

    @classmethod
    def for_base_token(cls, base_token: str, token0_symbol: str) -> Denomination:
        return cls.TOKEN0 if base_token == token0_symbol else cls.TOKEN1

    @property
    def inverted(self) -> bool:
        return self is Denomination.TOKEN0


def is_usd_pegged(symbol: str) -> bool:
    return symbol.upper() in USD_PEGGED_SYMBOLS


def choose_denomination(
    token0_symbol: str, token1_symbol: str, pool_price: float | str | None = None
) -> str:
    """Pick the quote token for price display.

    A stablecoin always quotes the other token. Otherwise quote in token1 unless
    the pool price is below 1, where quoting in token0 reads better.
    """
    usd0, usd1 = is_usd_pegged(token0_symbol), is_usd_pegged(token1_symbol)
    if usd0 != usd1:
        return token0_symbol if usd0 else token1_symbol
    price = _parse_positive(pool_price)
    if price is not None and price < 1:
        return token0_symbol
    return token1_symbol


def price_decimals(
    quote_symbol: str, *, display_decimals: int | None = None, is_stable_pool: bool = False
) -> int:
    if is_usd_pegged(quote_symbol):
        return STABLE_POOL_USD_PRICE_DECIMALS if is_stable_pool else USD_PRICE_DECIMALS
    return display_decimals if display_decimals is not None else DEFAULT_PRICE_DECIMALS


def _parse_positive(value: float | str | None) -> float | None:
    if value is None:
        return None
    try:
        number = float(str(value).replace(",", "").strip())
    except ValueError:
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def raw_price_at_tick(
    tick: int, pool_tick: int, pool_price: float, denomination: Denomination
) -> float:
    exponent = (tick - pool_tick) * LOG_TICK_BASE
    match denomination:
        case Denomination.TOKEN0:
            return math.exp(-(math.log(pool_price) + exponent))
        case Denomination.TOKEN1:
            return math.exp(math.log(pool_price) + exponent)


def tick_to_price(
    tick: int,
    pool_tick: int | None,
    pool_price: float | str | None,
    base_token: str,
    token0_symbol: str,
    token1_symbol: str,
    *,
    min_tick: int,
    max_tick: int,
    display_decimals: int | None = None,
    is_stable_pool: bool = False,
) -> str | None:
    """Display price at ``tick`` quoted in ``base_token``.

    The extreme tick whose price diverges renders as ``"∞"``, the opposite
    extreme as ``"0"``. Prices below the display threshold render as ``"<X"``.
    Returns ``None`` when the pool state is missing or unusable.
    """
    denomination = Denomination.for_base_token(base_token, token0_symbol)
    quote_symbol = token0_symbol if denomination.inverted else token1_symbol
    decimals = price_decimals(
        quote_symbol, display_decimals=display_decimals, is_stable_pool=is_stable_pool
    )

    infinite_tick, zero_tick = (
        (min_tick, max_tick) if denomination.inverted else (max_tick, min_tick)
    )
    if tick == infinite_tick:
        return INFINITY_SYMBOL
    if tick == zero_tick:
        return ZERO_PRICE

    price = _parse_positive(pool_price)
    if pool_tick is None or price is None:
        return None

    value = raw_price_at_tick(tick, pool_tick, price, denomination)
    if not math.isfinite(value):
        return None
    if value < 10.0**-decimals:
        return f"<{threshold_label(decimals)}"
    return format_price(value, decimals)


def price_to_tick(
    price: str | None,
    is_upper_bound: bool,
    base_token: str,
    tick_spacing: int,
    min_tick: int,
    max_tick: int,
    pool_tick: int | None,
    pool_price: float | str | None,
    *,
    token0_symbol: str,
) -> int | None:
    """Tick for a user-entered bound price, or ``None`` when it cannot be derived.

    ``is_upper_bound`` refers to the displayed max price. When quoting in
    token0 the displayed max price is the position's lower tick.
    A raw tick that the typed precision cannot tell apart from an integer
    rounds to that integer; otherwise it is rounded away from the range.
    The result is then snapped to spacing.
    """
    denomination = Denomination.for_base_token(base_token, token0_symbol)
    is_upper_tick = is_upper_bound != denomination.inverted

    normalized = (price or "").replace(",", "").strip().lower()
    if not normalized:
        return None

    if normalized in INFINITY_INPUTS:
        return max_tick if is_upper_tick else min_tick
    # "0" is the display sentinel for the open end opposite to infinity
    if normalized == ZERO_PRICE and not is_upper_bound:
        return max_tick if is_upper_tick else min_tick

    numeric = _parse_positive(normalized)
    reference = _parse_positive(pool_price)
    if numeric is None or reference is None or pool_tick is None:
        return None

    match denomination:
        case Denomination.TOKEN0:
            ratio = 1 / (numeric * reference)
        case Denomination.TOKEN1:
            ratio = numeric / reference
    if ratio <= 0 or not math.isfinite(ratio):
        return None

    raw_tick = pool_tick + math.log(ratio) / LOG_TICK_BASE
    if not math.isfinite(raw_tick):
        return None

    nearest = round(raw_tick)
    if abs(raw_tick - nearest) <= _display_tolerance(normalized, numeric):
        tick = nearest
    else:
        tick = math.ceil(raw_tick) if is_upper_tick else math.floor(raw_tick)

    return clamp_tick(nearest_usable_tick(tick, tick_spacing), min_tick, max_tick)


def _display_tolerance(text: str, value: float) -> float:
    """Half a unit in the last digit of ``text``, expressed in ticks.

    A displayed price is rounded to that digit, so any raw tick within this
    distance of an integer may be that integer shown at limited precision.
    """
    try:
        exponent = Decimal(text).as_tuple().exponent
    except InvalidOperation:
        return _TICK_EPSILON
    if not isinstance(exponent, int):
        return _TICK_EPSILON
    half_unit = 0.5 * 10.0**exponent
    return half_unit / (value * LOG_TICK_BASE) + _TICK_EPSILON


def is_tick_at_limit(tick: int, min_tick: int, max_tick: int) -> tuple[bool, bool]:
    """``(at_min, at_max)``."""
    return tick <= min_tick, tick >= max_tick


def is_valid_tick_range(tick_lower: int, tick_upper: int, tick_spacing: int) -> bool:
    return (
        tick_lower < tick_upper
        and tick_lower % tick_spacing == 0
        and tick_upper % tick_spacing == 0
    )


def calculate_range_percentage(
    tick_lower: int, tick_upper: int, pool_tick: int
) -> tuple[float, float]:
    """Distance of each bound from the pool price, in percent."""
    lower_pct = (1 - 1.0001 ** (tick_lower - pool_tick)) * 100
    upper_pct = (1.0001 ** (tick_upper - pool_tick) - 1) * 100
    return lower_pct, upper_pct
