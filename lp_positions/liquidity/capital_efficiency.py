from __future__ import annotations

import math
from dataclasses import dataclass

from lp_positions.core.utils.formatting import clamp_apr, format_apr
from lp_positions.core.utils.tick_math import LOG_TICK_BASE
from lp_positions.liquidity.range_presets import FullRange, Percentage, Preset

MAX_MULTIPLIER = 500.0
OUT_OF_RANGE_LABEL = "out of range"

_UNIT_RATIO_TOLERANCE = 1e-9


@dataclass(frozen=True)
class CapitalEfficiency:
    multiplier: float
    capped_at: float = MAX_MULTIPLIER


@dataclass(frozen=True)
class BoostedApr:
    apr: float
    multiplier: float
    out_of_range: bool = False

    @property
    def display(self) -> str:
        if self.out_of_range:
            return f"{format_apr(0.0)} ({OUT_OF_RANGE_LABEL})"
        return format_apr(clamp_apr(self.apr))


def _clamp_multiplier(value: float) -> float:
    return min(max(value, 1.0), MAX_MULTIPLIER)


def multiplier_for_preset(preset: Preset) -> float:
    match preset:
        case FullRange():
            return 1.0
        case Percentage(percent=percent):
            if percent <= 0:
                return MAX_MULTIPLIER
            return _clamp_multiplier(1 / (2 * (percent / 100)))


def multiplier_for_range(
    tick_lower: int, tick_upper: int, *, min_tick: int, max_tick: int
) -> float:
    if tick_lower <= min_tick and tick_upper >= max_tick:
        return 1.0
    if tick_lower >= tick_upper:
        return 1.0

    # (Pu / Pl) ** 0.25 with Pl = 1.0001**tl, Pu = 1.0001**tu
    r = math.exp((tick_upper - tick_lower) * LOG_TICK_BASE / 4)
    if abs(r - 1) < _UNIT_RATIO_TOLERANCE:
        return MAX_MULTIPLIER
    return _clamp_multiplier(2 / (r - 1 / r))


def capital_efficiency(
    tick_lower: int,
    tick_upper: int,
    *,
    min_tick: int,
    max_tick: int,
    preset: Preset | None = None,
) -> CapitalEfficiency:
    """Concentration multiplier for a range; presets use the closed form."""
    if tick_lower <= min_tick and tick_upper >= max_tick:
        return CapitalEfficiency(1.0)
    if preset is not None:
        return CapitalEfficiency(multiplier_for_preset(preset))
    return CapitalEfficiency(
        multiplier_for_range(tick_lower, tick_upper, min_tick=min_tick, max_tick=max_tick)
    )


def is_position_in_range(tick_lower: int, tick_upper: int, pool_tick: int) -> bool:
    """On-chain activity check: the upper tick itself is outside the position."""
    return tick_lower <= pool_tick < tick_upper


def boosted_apr(
    base_apr: float,
    multiplier: float,
    pool_tick: int | None,
    tick_lower: int,
    tick_upper: int,
    is_full_range: bool,
) -> BoostedApr:
    if not is_full_range and pool_tick is not None:
        if pool_tick < tick_lower or pool_tick > tick_upper:
            return BoostedApr(apr=0.0, multiplier=multiplier, out_of_range=True)

    boosted = base_apr * multiplier
    return BoostedApr(apr=min(boosted, base_apr * MAX_MULTIPLIER), multiplier=multiplier)
