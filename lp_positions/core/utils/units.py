from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation

ELLIPSIS = "..."


def _to_decimal(value: str | int | float | Decimal) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return Decimal(value)
    return Decimal(str(value).strip())


def clean_amount(amount: str | None) -> str:
    """Strip display artifacts (truncation ellipsis, separators, whitespace)."""
    return (amount or "").replace(ELLIPSIS, "").replace(",", "").strip()


def parse_decimal_amount(amount: str | None) -> Decimal | None:
    """Parse a user-entered amount; ``None`` for blank or unparsable input."""
    cleaned = clean_amount(amount)
    if not cleaned or cleaned == ".":
        return None
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def is_positive_amount(amount: str | None) -> bool:
    value = parse_decimal_amount(amount)
    return value is not None and value > 0


def parse_units(amount: str | int | float | Decimal, decimals: int) -> int:
    try:
        amt = _to_decimal(amount if not isinstance(amount, str) else clean_amount(amount))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid token amount: {amount}") from exc
    if not amt.is_finite():
        raise ValueError(f"Invalid token amount: {amount}")
    if amt < 0:
        raise ValueError("Amount must be non-negative")
    scale = Decimal(10) ** int(decimals)
    return int((amt * scale).to_integral_value(rounding=ROUND_DOWN))


def format_units(raw: int | str, decimals: int) -> Decimal:
    return Decimal(int(raw)) / (Decimal(10) ** int(decimals))
