"""Percentage range presets and their tick bounds.

Bounds depend on the live pool tick, so preset detection recomputes every
candidate on each call rather than caching bounds.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import ClassVar

from loguru import logger

from lp_positions.core.errors import InvalidInput, RangeTooNarrow
from lp_positions.core.utils.tick_math import (
    ceil_to_spacing,
    clamp_tick,
    floor_to_spacing,
    tick_delta_for_percentage,
)


@dataclass(frozen=True)
class Percentage:
    percent: float

    @property
    def fraction(self) -> float:
        return self.percent / 100

    @property
    def label(self) -> str:
        return f"±{self.percent:g}%"


@dataclass(frozen=True)
class FullRange:
    label: ClassVar[str] = "Full Range"


Preset = Percentage | FullRange

FULL_RANGE = FullRange()
PERCENTAGE_PRESETS: tuple[Percentage, ...] = tuple(
    Percentage(p) for p in (0.1, 0.5, 1, 3, 8, 15)
)
PRESETS: tuple[Preset, ...] = (*PERCENTAGE_PRESETS, FULL_RANGE)

STABLE_PRESET_OPTIONS: tuple[Preset, ...] = (
    Percentage(1),
    Percentage(0.5),
    Percentage(0.1),
    FULL_RANGE,
)
VOLATILE_PRESET_OPTIONS: tuple[Preset, ...] = (
    FULL_RANGE,
    Percentage(15),
    Percentage(8),
    Percentage(3),
)

_WIDE = {
    True: frozenset({Percentage(3), Percentage(1)}),
    False: frozenset({Percentage(15), Percentage(8)}),
}
_NARROW = {
    True: frozenset({Percentage(0.5), Percentage(0.1)}),
    False: frozenset({Percentage(3)}),
}

_PRESET_LABEL = re.compile(r"^±\s*(\d+(?:\.\d+)?)\s*%$")


def parse_preset(label: str | None) -> Preset | None:
    if not label:
        return None
    text = label.strip()
    if text.lower() == FullRange.label.lower():
        return FULL_RANGE
    if m := _PRESET_LABEL.match(text):
        return Percentage(float(m.group(1)))
    return None


def preset_options(is_stable_pool: bool) -> tuple[Preset, ...]:
    return STABLE_PRESET_OPTIONS if is_stable_pool else VOLATILE_PRESET_OPTIONS


def preset_display_label(preset: Preset | None, is_stable_pool: bool) -> str:
    if preset is None:
        return "Select Range"
    match preset:
        case FullRange():
            return FullRange.label
        case Percentage() if preset in _WIDE[is_stable_pool]:
            return "Wide"
        case Percentage() if preset in _NARROW[is_stable_pool]:
            return "Narrow"
        case _:
            return "Custom"


def default_viewport_percentage(is_stable_pool: bool) -> Percentage:
    return Percentage(3) if is_stable_pool else Percentage(15)


def preset_to_range(
    preset: Preset, pool_tick: int, tick_spacing: int, min_tick: int, max_tick: int
) -> tuple[int, int]:
    """Aligned ``(tick_lower, tick_upper)`` for ``preset`` around ``pool_tick``.

    Raises RangeTooNarrow when the aligned, clamped range is under one spacing.
    """
    match preset:
        case FullRange():
            return min_tick, max_tick
        case Percentage(percent=percent):
            if percent <= 0:
                raise InvalidInput(f"Preset percentage must be positive: {percent}")
            delta = tick_delta_for_percentage(percent / 100)
            tick_lower = clamp_tick(
                floor_to_spacing(pool_tick - delta, tick_spacing), min_tick, max_tick
            )
            tick_upper = clamp_tick(
                ceil_to_spacing(pool_tick + delta, tick_spacing), min_tick, max_tick
            )
        case _:
            raise InvalidInput(f"Unknown preset: {preset!r}")

    if tick_upper - tick_lower < tick_spacing:
        raise RangeTooNarrow.for_preset(
            preset.label, tick_lower, tick_upper, tick_spacing
        )
    return tick_lower, tick_upper


def detect_preset(
    tick_lower: int,
    tick_upper: int,
    pool_tick: int,
    tick_spacing: int,
    min_tick: int,
    max_tick: int,
    *,
    candidates: tuple[Preset, ...] = PRESETS,
    current: Preset | None = None,
) -> Preset | None:
    """Preset whose bounds equal ``(tick_lower, tick_upper)``, or ``None`` (custom).

    Coarse spacings can map two presets onto the same bounds; ``current`` wins
    such ties so an applied preset keeps its identity.
    """
    if tick_lower <= min_tick and tick_upper >= max_tick:
        return FULL_RANGE

    ordered = candidates
    if current is not None:
        ordered = (current, *(c for c in candidates if c != current))

    for preset in ordered:
        if isinstance(preset, FullRange):
            continue
        try:
            bounds = preset_to_range(preset, pool_tick, tick_spacing, min_tick, max_tick)
        except RangeTooNarrow:
            continue
        if bounds == (tick_lower, tick_upper):
            return preset
    return None


class RangeSelection:
    """Owned range state for one position draft.

    Applying a preset that is too narrow leaves the range unchanged and returns
    the notice for the caller to surface.
    """

    def __init__(
        self,
        *,
        tick_spacing: int,
        min_tick: int,
        max_tick: int,
        is_stable_pool: bool = False,
    ):
        self.tick_spacing = tick_spacing
        self.min_tick = min_tick
        self.max_tick = max_tick
        self.is_stable_pool = is_stable_pool
        self.tick_lower: int | None = None
        self.tick_upper: int | None = None
        self.pool_tick: int | None = None
        self.preset: Preset | None = None
        self.logger = logger.bind(component=self.__class__.__name__)

    @property
    def range(self) -> tuple[int, int] | None:
        if self.tick_lower is None or self.tick_upper is None:
            return None
        return self.tick_lower, self.tick_upper

    @property
    def label(self) -> str:
        if self.preset is None and self.range is not None:
            return "Custom"
        return preset_display_label(self.preset, self.is_stable_pool)

    @property
    def is_full_range(self) -> bool:
        return isinstance(self.preset, FullRange)

    def apply_preset(self, preset: Preset, pool_tick: int) -> RangeTooNarrow | None:
        try:
            tick_lower, tick_upper = preset_to_range(
                preset, pool_tick, self.tick_spacing, self.min_tick, self.max_tick
            )
        except RangeTooNarrow as exc:
            self.logger.info(f"Preset {preset.label} ignored: {exc.message}")
            return exc
        self.pool_tick = pool_tick
        self.tick_lower, self.tick_upper = tick_lower, tick_upper
        self.preset = preset
        return None

    def set_range(self, tick_lower: int, tick_upper: int) -> None:
        if tick_lower >= tick_upper:
            raise InvalidInput(
                f"Invalid tick range: lower {tick_lower} >= upper {tick_upper}"
            )
        for tick in (tick_lower, tick_upper):
            if tick < self.min_tick or tick > self.max_tick:
                raise InvalidInput(
                    f"Tick {tick} outside [{self.min_tick}, {self.max_tick}]"
                )
            # the limits themselves are usable even when off the spacing grid
            if tick % self.tick_spacing and tick not in (self.min_tick, self.max_tick):
                raise InvalidInput(
                    f"Tick {tick} is not a multiple of spacing {self.tick_spacing}"
                )
        if tick_upper - tick_lower < self.tick_spacing:
            raise RangeTooNarrow(
                f"Range ({tick_lower}, {tick_upper}) is narrower than one tick spacing"
            )
        self.tick_lower, self.tick_upper = tick_lower, tick_upper
        self._redetect()

    def update_pool_tick(self, pool_tick: int) -> None:
        self.pool_tick = pool_tick
        self._redetect()

    def reset(self) -> None:
        self.tick_lower = self.tick_upper = self.pool_tick = None
        self.preset = None

    def _redetect(self) -> None:
        if self.range is None:
            self.preset = None
            return
        if self.pool_tick is None:
            self.preset = (
                FULL_RANGE
                if self.tick_lower <= self.min_tick and self.tick_upper >= self.max_tick
                else None
            )
            return
        self.preset = detect_preset(
            self.tick_lower,
            self.tick_upper,
            self.pool_tick,
            self.tick_spacing,
            self.min_tick,
            self.max_tick,
            current=self.preset,
        )
