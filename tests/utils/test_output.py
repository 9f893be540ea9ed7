from __future__ import annotations

import json
import logging
import sys
from decimal import Decimal

import pytest

from domain.pricing import Conversion, HistoryInterval, TickerMatch
from tests.helpers.stub_providers import FIXED_NOW, make_history
from utils.formatting import format_amount, format_change, format_decimal, format_market_cap, format_price
from utils.json_output import to_json
from utils.logging_setup import setup_logging
from utils.table_output import (
    SPARK_CHARS,
    print_conversions_table,
    print_history_charts,
    print_ticker_matches_table,
    render_rows,
    sparkline,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (Decimal("1234567.891"), "1,234,567.89"),
        (Decimal("1"), "1.00"),
        (Decimal("0.000123456789"), "0.00012346"),
        (Decimal("0"), "0.00"),
    ],
)
def test_format_price(value: Decimal, expected: str) -> None:
    assert format_price(value) == expected


def test_format_helpers() -> None:
    assert format_decimal(Decimal("10.500")) == "10.5"
    assert format_decimal(Decimal("1E+2")) == "100"
    assert format_amount(Decimal("0.002")) == "0.002"
    assert format_change(Decimal("1.234")) == "+1.23%"
    assert format_change(Decimal("-0.5")) == "-0.50%"
    assert format_change(None) == "-"
    assert format_market_cap(Decimal("1234000000000")) == "1.23T"
    assert format_market_cap(Decimal("5600000")) == "5.60M"
    assert format_market_cap(Decimal("999")) == "999"


def test_render_rows_aligns_columns() -> None:
    table = render_rows(("A", "Value"), [("x", "1"), ("long", "100")], right_aligned={1})

    assert table.splitlines() == ["A     Value", "-----------", "x         1", "long    100"]


def test_sparkline_scales_between_lowest_and_highest() -> None:
    line = sparkline([Decimal(1), Decimal(5), Decimal(9)])

    assert line == SPARK_CHARS[0] + SPARK_CHARS[3] + SPARK_CHARS[-1]


def test_sparkline_flat_series_and_downsampling() -> None:
    assert sparkline([Decimal(3)] * 4) == SPARK_CHARS[4] * 4
    values = [Decimal(idx) for idx in range(200)]
    line = sparkline(values, width=20)
    assert len(line) == 20
    assert line[-1] == SPARK_CHARS[-1]
    assert sparkline([]) == ""


def test_conversions_table(capsys: pytest.CaptureFixture[str]) -> None:
    conversion = Conversion(
        from_amount=Decimal("100"),
        from_currency="USD",
        to_symbol="BTC",
        to_name="Bitcoin",
        to_amount=Decimal("0.002"),
        rate=Decimal("50000"),
        provider="CoinGecko",
        timestamp=FIXED_NOW,
    )

    print_conversions_table([conversion])

    out = capsys.readouterr().out
    assert "100 USD" in out
    assert "0.002 BTC" in out
    assert "1 BTC = 50,000.00 USD" in out


def test_ticker_matches_table_handles_empty(capsys: pytest.CaptureFixture[str]) -> None:
    print_ticker_matches_table([])
    assert capsys.readouterr().out.strip() == "No matches."

    print_ticker_matches_table([TickerMatch("AAPL.US", "Apple Inc", "NASDAQ", "stock", "Stooq")])
    out = capsys.readouterr().out
    assert "AAPL.US" in out and "NASDAQ" in out


def test_history_chart_summary(capsys: pytest.CaptureFixture[str]) -> None:
    print_history_charts([make_history("BTC", [1, 2, 3])], "1M", HistoryInterval.DAILY)

    out = capsys.readouterr().out
    assert "BTC (Btc) - 1M, daily sampling, Stub" in out
    assert "(3 points)" in out
    assert "low 101.00  high 103.00  last 103.00 USD" in out


def test_to_json_encodes_decimals_and_datetimes() -> None:
    payload = json.loads(to_json([make_history("BTC", [1])]))

    assert payload == [
        {
            "symbol": "BTC",
            "name": "Btc",
            "currency": "USD",
            "provider": "Stub",
            "points": [{"timestamp": "2026-02-01T00:00:00+00:00", "price": 101}],
        }
    ]


@pytest.mark.parametrize(
    ("verbosity", "level", "urllib3_level"),
    [
        (0, logging.WARNING, logging.WARNING),
        (1, logging.INFO, logging.WARNING),
        (2, logging.DEBUG, logging.WARNING),
        (3, logging.DEBUG, logging.DEBUG),
    ],
)
def test_setup_logging_levels(verbosity: int, level: int, urllib3_level: int) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging(verbosity)

        assert root.level == level
        assert logging.getLogger("urllib3").level == urllib3_level
        (handler,) = root.handlers
        assert isinstance(handler, logging.StreamHandler)
        assert handler.stream is sys.stderr
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
        logging.getLogger("urllib3").setLevel(logging.NOTSET)
