"""Display formatting for token amounts, prices, APRs and durations."""

from __future__ import annotations

import math
from decimal import ROUND_DOWN, Decimal

from lp_positions.core.utils.units import ELLIPSIS

# APR values are clamped to 9999% (999900 bps)
MAX_APR_PERCENT = 9999.0


def _strip_zeros(text: str) -> str:
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def threshold_label(decimals: int) -> str:
    return f"{Decimal(1).scaleb(-decimals):f}"


def format_token_amount(value: Decimal | int | str, display_decimals: int) -> str:
    """Truncate to ``display_decimals`` places.

    ``"< 0.0001"`` below the display epsilon, ``"..."`` suffix when digits were cut.
    """
    amount = Decimal(value)
    if amount == 0:
        return "0"
    epsilon = Decimal(1).scaleb(-display_decimals)
    if 0 < amount < epsilon:
        return f"< {threshold_label(display_decimals)}"

    shown = amount.quantize(epsilon, rounding=ROUND_DOWN)
    text = _strip_zeros(f"{shown:f}")
    if shown != amount:
        return f"{text}{ELLIPSIS}"
    return text


def format_price(value: float, decimals: int) -> str:
    if not math.isfinite(value):
        raise ValueError(f"cannot format non-finite price {value}")
    threshold = 10.0**-decimals
    if 0 < value < threshold:
        return f"<{threshold_label(decimals)}"
    return f"{value:.{decimals}f}"


def clamp_apr(value: float) -> float:
    if not math.isfinite(value):
        return 0.0
    return min(max(value, 0.0), MAX_APR_PERCENT)


def format_apr(apr: float | None, *, include_percent: bool = True) -> str:
    if apr is None:
        return "-"
    value = round(apr, 2)
    if not math.isfinite(value):
        return "-"
    if value == 0:
        return "0%" if include_percent else "0.00"
    suffix = "%" if include_percent else ""
    if value >= 1000:
        rounded = round(value)
        return f"{rounded}%" if include_percent else f"{rounded:,}"
    if value >= 100:
        return f"{value:.0f}{suffix}"
    if value >= 10:
        return f"{value:.1f}{suffix}"
    return f"{value:.2f}{suffix}"


def format_duration(seconds: int) -> str:
    """Human duration rounded up to whole days, hours or minutes."""
    if seconds >= 86400:
        count, unit = math.ceil(seconds / 86400), "day"
    elif seconds >= 3600:
        count, unit = math.ceil(seconds / 3600), "hour"
    else:
        count, unit = max(math.ceil(seconds / 60), 0), "minute"
    return f"{count} {unit}{'s' if count != 1 else ''}"
