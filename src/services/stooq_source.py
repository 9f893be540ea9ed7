from __future__ import annotations

import csv
import io
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import ClassVar

import requests

from domain.errors import ConfigError, NoResultsError, ParseError
from domain.pricing import CoinPrice, HistoryInterval, PriceHistory, PricePoint, TickerMatch

from .http_client import HttpClient, parse_decimal
from .price_sources import Capability, PriceProvider

logger = logging.getLogger(__name__)

# Stooq quotes are never converted, the listing market fixes the currency.
_SUFFIX_CURRENCY: dict[str, str] = {
    "us": "USD",
    "de": "EUR",
    "jp": "JPY",
    "hk": "HKD",
    "pl": "PLN",
    "hu": "HUF",
}

_MISSING = "N/D"


def stooq_symbol(symbol: str) -> str:
    """Bare tickers are treated as US listings (``aapl`` -> ``aapl.us``)."""

    lower = symbol.strip().lower()
    if "." in lower or lower.startswith("^"):
        return lower
    return f"{lower}.us"


def listing_currency(stooq_ticker: str) -> str | None:
    _, _, suffix = stooq_ticker.rpartition(".")
    return _SUFFIX_CURRENCY.get(suffix)


class StooqSource(PriceProvider):
    """Stooq end-of-day quotes and daily history for equities and indices."""

    name: ClassVar[str] = "Stooq"
    id: ClassVar[str] = "stooq"
    capabilities: ClassVar[frozenset[Capability]] = frozenset({Capability.HISTORY, Capability.SEARCH})

    def __init__(
        self,
        *,
        base_url: str = "https://stooq.com",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.client = HttpClient(label=self.name, base_url=base_url, timeout=timeout, session=session)

    def get_prices(self, symbols: list[str], currency: str) -> list[CoinPrice]:
        requested = currency.upper()
        now = datetime.now(timezone.utc)
        results: list[CoinPrice] = []
        for symbol in symbols:
            ticker = stooq_symbol(symbol)
            quoted_in = self._check_currency(symbol, ticker, requested)
            body = self.client.get_text(
                "/q/l/",
                params={"s": ticker, "f": "sd2t2ohlcvn", "h": "", "e": "csv"},
            )
            row = next(csv.DictReader(io.StringIO(body)), None)
            if row is None:
                raise ParseError(f"Stooq CSV for {ticker}: empty body")
            close = row.get("Close")
            if close is None:
                raise ParseError(f"Stooq CSV for {ticker}: missing 'Close' column")
            if close == _MISSING:
                logger.debug("Stooq has no quote for %s", ticker)
                continue

            name = row.get("Name") or symbol.upper()
            results.append(
                CoinPrice(
                    symbol=symbol.upper(),
                    name=name if name != _MISSING else symbol.upper(),
                    price=parse_decimal(close, source="Stooq CSV", field="Close"),
                    change_24h=None,
                    market_cap=None,
                    currency=quoted_in,
                    provider=self.name,
                    timestamp=now,
                )
            )

        if not results:
            raise NoResultsError()
        return results

    def get_price_history(
        self,
        symbols: list[str],
        currency: str,
        days: int,
        interval: HistoryInterval,
    ) -> list[PriceHistory]:
        if interval is HistoryInterval.HOURLY:
            raise ConfigError("Stooq provides daily history only -- use --sampling auto or --sampling daily")

        requested = currency.upper()
        today = datetime.now(timezone.utc).date()
        first_day = today - timedelta(days=days)
        histories: list[PriceHistory] = []
        for symbol in symbols:
            ticker = stooq_symbol(symbol)
            quoted_in = self._check_currency(symbol, ticker, requested)
            body = self.client.get_text(
                "/q/d/l/",
                params={"s": ticker, "i": "d", "d1": first_day.strftime("%Y%m%d"), "d2": today.strftime("%Y%m%d")},
            )
            points = self._parse_history_csv(body, ticker)
            if not points:
                logger.debug("Stooq has no history for %s", ticker)
                continue
            histories.append(
                PriceHistory(
                    symbol=symbol.upper(),
                    name=symbol.upper(),
                    currency=quoted_in,
                    provider=self.name,
                    points=points,
                )
            )

        if not histories:
            raise NoResultsError()
        return histories

    def search_tickers(self, query: str, limit: int) -> list[TickerMatch]:
        body = self.client.get_text("/cmp/", params={"q": query})
        matches: list[TickerMatch] = []
        for record in self._split_search_records(body):
            fields = record.split("~")
            if len(fields) < 3:
                raise ParseError(f"Stooq search: malformed record {record!r}")
            matches.append(
                TickerMatch(
                    symbol=fields[0].upper(),
                    name=fields[1],
                    exchange=fields[2],
                    asset_type=fields[3] if len(fields) > 3 and fields[3] else "stock",
                    provider=self.name,
                )
            )
            if len(matches) >= limit:
                break

        if not matches:
            raise NoResultsError(f"no tickers matching '{query}'")
        return matches

    def _check_currency(self, symbol: str, ticker: str, requested: str) -> str:
        quoted_in = listing_currency(ticker)
        if quoted_in is None:
            logger.debug("Stooq listing currency for %s unknown, reporting %s", ticker, requested)
            return requested
        if quoted_in != requested:
            raise ConfigError(
                f"Stooq does not convert currencies: {symbol.upper()} is quoted in {quoted_in}, "
                f"requested {requested} -- use --currency {quoted_in}"
            )
        return quoted_in

    @staticmethod
    def _parse_history_csv(body: str, ticker: str) -> list[PricePoint]:
        if not body.strip() or body.strip().lower().startswith("no data"):
            return []
        points: list[PricePoint] = []
        for row in csv.DictReader(io.StringIO(body)):
            raw_date = row.get("Date")
            close = row.get("Close")
            if raw_date is None or close is None:
                raise ParseError(f"Stooq history CSV for {ticker}: missing 'Date' or 'Close' column")
            try:
                day = date.fromisoformat(raw_date)
            except ValueError as exc:
                raise ParseError(f"Stooq history CSV for {ticker}: invalid date {raw_date!r}") from exc
            points.append(
                PricePoint(
                    timestamp=datetime.combine(day, time.min, tzinfo=timezone.utc),
                    price=parse_decimal(close, source="Stooq history CSV", field="Close"),
                )
            )
        return points

    @staticmethod
    def _split_search_records(body: str) -> list[str]:
        # Body shape: window.cmp_r('AAPL.US~Apple Inc~NASDAQ~stock|...');
        start = body.find("'")
        end = body.rfind("'")
        if start == -1 or end <= start:
            return []
        inner = body[start + 1 : end]
        return [record for record in inner.split("|") if record.strip()]


__all__ = ["StooqSource", "listing_currency", "stooq_symbol"]
