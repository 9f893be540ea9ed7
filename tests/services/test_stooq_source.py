from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from domain.errors import ConfigError, NoResultsError, ParseError
from domain.pricing import HistoryInterval
from services.stooq_source import StooqSource, listing_currency, stooq_symbol
from tests.helpers.stub_providers import mock_response, session_returning

QUOTE_CSV = (
    "Symbol,Date,Time,Open,High,Low,Close,Volume,Name\r\n"
    "AAPL.US,2026-02-19,22:00:00,230.1,233.5,229.8,232.44,51234567,APPLE\r\n"
)

HISTORY_CSV = (
    "Date,Open,High,Low,Close,Volume\n"
    "2026-02-17,228,231,227,230.5,100\n"
    "2026-02-18,230,233,229,232.1,120\n"
)


def test_stooq_symbol_defaults_to_us_listing() -> None:
    assert stooq_symbol("AAPL") == "aapl.us"
    assert stooq_symbol("sap.de") == "sap.de"
    assert stooq_symbol("^spx") == "^spx"


def test_listing_currency_by_suffix() -> None:
    assert listing_currency("sap.de") == "EUR"
    assert listing_currency("cdr.pl") == "PLN"
    assert listing_currency("^spx") is None


def test_get_prices_parses_quote_csv() -> None:
    session = session_returning(mock_response(text=QUOTE_CSV))
    source = StooqSource(session=session)

    (price,) = source.get_prices(["aapl"], "usd")

    assert session.request.call_args.kwargs["params"]["s"] == "aapl.us"
    assert price.symbol == "AAPL"
    assert price.name == "APPLE"
    assert price.price == Decimal("232.44")
    assert price.currency == "USD"
    assert price.change_24h is None
    assert price.market_cap is None


def test_get_prices_skips_missing_quotes() -> None:
    missing = "Symbol,Date,Time,Open,High,Low,Close,Volume,Name\r\nZZZ.US,N/D,N/D,N/D,N/D,N/D,N/D,N/D,N/D\r\n"
    source = StooqSource(session=session_returning(mock_response(text=missing)))

    with pytest.raises(NoResultsError):
        source.get_prices(["zzz"], "usd")


def test_get_prices_refuses_currency_conversion() -> None:
    session = session_returning()
    source = StooqSource(session=session)

    with pytest.raises(ConfigError, match="use --currency EUR"):
        source.get_prices(["sap.de"], "usd")

    session.request.assert_not_called()


def test_history_parses_daily_csv() -> None:
    session = session_returning(mock_response(text=HISTORY_CSV))
    source = StooqSource(session=session)

    (history,) = source.get_price_history(["aapl"], "USD", 5, HistoryInterval.AUTO)

    params = session.request.call_args.kwargs["params"]
    assert params["i"] == "d"
    assert len(params["d1"]) == 8
    assert [point.timestamp for point in history.points] == [
        datetime(2026, 2, 17, tzinfo=timezone.utc),
        datetime(2026, 2, 18, tzinfo=timezone.utc),
    ]
    assert history.points[-1].price == Decimal("232.1")


def test_history_rejects_hourly_sampling() -> None:
    with pytest.raises(ConfigError, match="daily history only"):
        StooqSource(session=session_returning()).get_price_history(["aapl"], "USD", 5, HistoryInterval.HOURLY)


def test_history_without_data_raises_no_results() -> None:
    source = StooqSource(session=session_returning(mock_response(text="No data")))

    with pytest.raises(NoResultsError):
        source.get_price_history(["aapl"], "USD", 5, HistoryInterval.DAILY)


def test_history_with_bad_date_is_a_parse_error() -> None:
    body = "Date,Open,High,Low,Close,Volume\nyesterday,1,1,1,1,1\n"
    source = StooqSource(session=session_returning(mock_response(text=body)))

    with pytest.raises(ParseError, match="invalid date"):
        source.get_price_history(["aapl"], "USD", 5, HistoryInterval.DAILY)


def test_search_parses_cmp_records() -> None:
    body = "window.cmp_r('AAPL.US~Apple Inc~NASDAQ~stock|APC.DE~Apple Inc~XETRA~|AAPL.MX~Apple~BMV~stock');"
    source = StooqSource(session=session_returning(mock_response(text=body)))

    matches = source.search_tickers("apple", 2)

    assert [(match.symbol, match.exchange, match.asset_type) for match in matches] == [
        ("AAPL.US", "NASDAQ", "stock"),
        ("APC.DE", "XETRA", "stock"),
    ]


def test_search_without_records_raises_no_results() -> None:
    source = StooqSource(session=session_returning(mock_response(text="window.cmp_r('');")))

    with pytest.raises(NoResultsError):
        source.search_tickers("qqqqq", 5)
