from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


def format_decimal(value: Decimal) -> str:
    quantized = value.normalize()
    # Avoid scientific notation for integers.
    if quantized == quantized.to_integral():
        return f"{quantized:.0f}"
    return format(quantized, "f")


def format_price(value: Decimal) -> str:
    """Two decimals with thousands separators for prices >= 1, more precision below."""

    if abs(value) >= 1:
        return f"{value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):,.2f}"
    if value == 0:
        return "0.00"
    return format_decimal(value.quantize(Decimal("0.00000001"), rounding=ROUND_HALF_UP))


def format_amount(value: Decimal) -> str:
    # Crypto amounts are often tiny; keep eight fractional digits.
    return format_decimal(value.quantize(Decimal("0.00000001"), rounding=ROUND_HALF_UP))


def format_change(value: Decimal | None) -> str:
    if value is None:
        return "-"
    rounded = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "+" if rounded > 0 else ""
    return f"{sign}{rounded:.2f}%"


def format_market_cap(value: Decimal | None) -> str:
    if value is None:
        return "-"
    for threshold, suffix in ((Decimal(10) ** 12, "T"), (Decimal(10) ** 9, "B"), (Decimal(10) ** 6, "M")):
        if abs(value) >= threshold:
            return f"{(value / threshold).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):.2f}{suffix}"
    return f"{value.quantize(Decimal('1'), rounding=ROUND_HALF_UP):,.0f}"


__all__ = ["format_amount", "format_change", "format_decimal", "format_market_cap", "format_price"]
