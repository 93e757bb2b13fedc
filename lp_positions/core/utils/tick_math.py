"""Tick grid helpers and concentrated-liquidity amount math.

Pure functions only: tick alignment and clamping, sqrtPriceX96 conversions and
the Decimal liquidity formulas used by the in-process math service.
"""

from __future__ import annotations

import math
from decimal import Decimal, getcontext

from lp_positions.core.constants import SDK_MAX_TICK, SDK_MIN_TICK

getcontext().prec = 64

Q96 = Decimal(2) ** 96
Q32 = 1 << 32
TICK_BASE = 1.0001
LOG_TICK_BASE = math.log(TICK_BASE)


def floor_to_spacing(tick: int | float, spacing: int) -> int:
    if spacing <= 0:
        return math.floor(tick)
    return math.floor(tick / spacing) * spacing


def ceil_to_spacing(tick: int | float, spacing: int) -> int:
    if spacing <= 0:
        return math.ceil(tick)
    return math.ceil(tick / spacing) * spacing


def nearest_usable_tick(tick: int | float, spacing: int) -> int:
    if spacing <= 0:
        return round(tick)
    return round(tick / spacing) * spacing


def clamp_tick(tick: int, min_tick: int, max_tick: int) -> int:
    return max(min_tick, min(max_tick, tick))


def tick_space_limits(spacing: int) -> tuple[int, int]:
    """Outermost ticks usable with ``spacing``: sdk bounds truncated toward zero."""
    if spacing <= 0:
        raise ValueError("tick spacing must be positive")
    min_tick = -((-SDK_MIN_TICK) // spacing) * spacing
    max_tick = (SDK_MAX_TICK // spacing) * spacing
    return min_tick, max_tick


def tick_delta_for_percentage(percentage: float) -> int:
    """Ticks spanned by a ``percentage`` move (0.15 == 15%)."""
    return round(math.log(1 + percentage) / LOG_TICK_BASE)


def sqrt_price_x96_from_tick(
    tick: int, *, min_tick: int = SDK_MIN_TICK, max_tick: int = SDK_MAX_TICK
) -> int:
    if tick < min_tick or tick > max_tick:
        raise ValueError(f"tick {tick} out of range [{min_tick}, {max_tick}]")

    abs_tick = tick if tick >= 0 else -tick
    ratio = 0x100000000000000000000000000000000

    for bit, factor in _TICK_RATIO_FACTORS:
        if abs_tick & bit:
            ratio = (ratio * factor) >> 128

    if tick > 0:
        ratio = (1 << 256) // ratio

    sqrt_price_x96 = ratio >> 32
    if ratio & (Q32 - 1):
        sqrt_price_x96 += 1
    return int(sqrt_price_x96)


_TICK_RATIO_FACTORS: tuple[tuple[int, int], ...] = (
    (0x1, 0xFFFCB933BD6FAD37AA2D162D1A594001),
    (0x2, 0xFFF97272373D413259A46990580E213A),
    (0x4, 0xFFF2E50F5F656932EF12357CF3C7FDCC),
    (0x8, 0xFFE5CACA7E10E4E61C3624EAA0941CD0),
    (0x10, 0xFFCB9843D60F6159C9DB58835C926644),
    (0x20, 0xFF973B41FA98C081472E6896DFB254C0),
    (0x40, 0xFF2EA16466C96A3843EC78B326B52861),
    (0x80, 0xFE5DEE046A99A2A811C461F1969C3053),
    (0x100, 0xFCBE86C7900A88AEDCFFC83B479AA3A4),
    (0x200, 0xF987A7253AC413176F2B074CF7815E54),
    (0x400, 0xF3392B0822B70005940C7A398E4B70F3),
    (0x800, 0xE7159475A2C29B7443B29C7FA6E889D9),
    (0x1000, 0xD097F3BDFD2022B8845AD8F792AA5825),
    (0x2000, 0xA9F746462D870FDF8A65DC1F90E061E5),
    (0x4000, 0x70D869A156D2A1B890BB3DF62BAF32F7),
    (0x8000, 0x31BE135F97D08FD981231505542FCFA6),
    (0x10000, 0x9AA508B5B7A84E1C677DE54F3E99BC9),
    (0x20000, 0x5D6AF8DEDB81196699C329225EE604),
    (0x40000, 0x2216E584F5FA1EA926041BEDFE98),
    (0x80000, 0x48A170391F7DC42444E8FA2),
)


def _sorted_bounds(sqrt_a: int, sqrt_b: int) -> tuple[Decimal, Decimal]:
    a, b = sorted((Decimal(sqrt_a), Decimal(sqrt_b)))
    return a, b


def amount0_for_liquidity(sqrt_a: int, sqrt_b: int, liquidity: int) -> int:
    a, b = _sorted_bounds(sqrt_a, sqrt_b)
    return int((Decimal(liquidity) * (b - a) * Q96) / (a * b))


def amount1_for_liquidity(sqrt_a: int, sqrt_b: int, liquidity: int) -> int:
    a, b = _sorted_bounds(sqrt_a, sqrt_b)
    return int((Decimal(liquidity) * (b - a)) / Q96)


def liquidity_for_amount0(sqrt_a: int, sqrt_b: int, amount0: int) -> int:
    a, b = _sorted_bounds(sqrt_a, sqrt_b)
    if a == b:
        return 0
    return int((Decimal(amount0) * a * b) / (Q96 * (b - a)))


def liquidity_for_amount1(sqrt_a: int, sqrt_b: int, amount1: int) -> int:
    a, b = _sorted_bounds(sqrt_a, sqrt_b)
    if a == b:
        return 0
    return int((Decimal(amount1) * Q96) / (b - a))


def amounts_for_liquidity(
    sqrt_p: int, sqrt_a: int, sqrt_b: int, liquidity: int
) -> tuple[int, int]:
    a, b = _sorted_bounds(sqrt_a, sqrt_b)
    p = Decimal(sqrt_p)
    if p <= a:
        return amount0_for_liquidity(int(a), int(b), liquidity), 0
    if p < b:
        return (
            amount0_for_liquidity(int(p), int(b), liquidity),
            amount1_for_liquidity(int(a), int(p), liquidity),
        )
    return 0, amount1_for_liquidity(int(a), int(b), liquidity)
