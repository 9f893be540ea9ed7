from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from domain.pricing import CoinPrice, Conversion, HistoryInterval, PriceHistory, TickerMatch

from .formatting import format_amount, format_change, format_market_cap, format_price

SPARK_CHARS = "▁▂▃▄▅▆▇█"
SPARK_WIDTH = 60


def render_rows(headers: Sequence[str], rows: Sequence[Sequence[str]], right_aligned: set[int] | None = None) -> str:
    right = right_aligned or set()
    widths = [len(header) for header in headers]
    for row in rows:
        for idx, cell in enumerate(row):
            widths[idx] = max(widths[idx], len(cell))

    def _line(cells: Sequence[str]) -> str:
        parts = [f"{cell:>{widths[idx]}}" if idx in right else f"{cell:<{widths[idx]}}" for idx, cell in enumerate(cells)]
        return "  ".join(parts).rstrip()

    header = _line(headers)
    lines = [header, "-" * len(header)]
    lines.extend(_line(row) for row in rows)
    return "\n".join(lines)


def print_table(prices: Sequence[CoinPrice]) -> None:
    rows = [
        (
            price.symbol,
            price.name,
            f"{format_price(price.price)} {price.currency}",
            format_change(price.change_24h),
            format_market_cap(price.market_cap),
            price.provider,
        )
        for price in prices
    ]
    print(render_rows(("Symbol", "Name", "Price", "24h", "Market Cap", "Provider"), rows, right_aligned={2, 3, 4}))


def print_conversions_table(conversions: Sequence[Conversion]) -> None:
    rows = [
        (
            f"{format_amount(conv.from_amount)} {conv.from_currency}",
            f"{format_amount(conv.to_amount)} {conv.to_symbol}",
            conv.to_name,
            f"1 {conv.to_symbol} = {format_price(conv.rate)} {conv.from_currency}",
            conv.provider,
        )
        for conv in conversions
    ]
    print(render_rows(("From", "To", "Name", "Rate", "Provider"), rows, right_aligned={0, 1}))


def print_ticker_matches_table(matches: Sequence[TickerMatch]) -> None:
    if not matches:
        print("No matches.")
        return
    rows = [(match.symbol, match.name, match.exchange, match.asset_type, match.provider) for match in matches]
    print(render_rows(("Symbol", "Name", "Exchange", "Type", "Provider"), rows))


def sparkline(values: Sequence[Decimal], width: int = SPARK_WIDTH) -> str:
    if not values:
        return ""
    if len(values) > width:
        # Keep the last sample so the line always ends on the latest price.
        step = len(values) / width
        values = [values[min(int(idx * step), len(values) - 1)] for idx in range(width - 1)] + [values[-1]]
    low, high = min(values), max(values)
    span = high - low
    if span == 0:
        return SPARK_CHARS[len(SPARK_CHARS) // 2] * len(values)
    top = len(SPARK_CHARS) - 1
    return "".join(SPARK_CHARS[int((value - low) / span * top)] for value in values)


def print_history_charts(histories: Sequence[PriceHistory], range_label: str, interval: HistoryInterval) -> None:
    blocks: list[str] = []
    for history in histories:
        prices = [point.price for point in history.points]
        first, last = prices[0], prices[-1]
        change = (last - first) / first * Decimal(100) if first else None
        first_ts = history.points[0].timestamp.strftime("%Y-%m-%d %H:%M")
        last_ts = history.points[-1].timestamp.strftime("%Y-%m-%d %H:%M")
        lines = [
            f"{history.symbol} ({history.name}) - {range_label}, {interval.value} sampling, {history.provider}",
            sparkline(prices),
            f"  {first_ts} -> {last_ts}  ({len(prices)} points)",
            (
                f"  low {format_price(min(prices))}  high {format_price(max(prices))}  "
                f"last {format_price(last)} {history.currency}  change {format_change(change)}"
            ),
        ]
        blocks.append("\n".join(lines))
    print("\n\n".join(blocks))


__all__ = [
    "print_conversions_table",
    "print_history_charts",
    "print_table",
    "print_ticker_matches_table",
    "render_rows",
    "sparkline",
]
