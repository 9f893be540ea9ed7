from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, ClassVar

import requests

from domain.errors import ApiError, ConfigError, NoResultsError, ParseError
from domain.pricing import CoinPrice, HistoryInterval, PriceHistory, PricePoint, TickerMatch

from .http_client import HttpClient, parse_decimal, parse_optional_decimal
from .price_sources import Capability, PriceProvider

logger = logging.getLogger(__name__)

# Yahoo only keeps intraday bars for roughly two years.
HOURLY_MAX_DAYS = 730
AUTO_HOURLY_MAX_DAYS = 30


class YahooFinanceSource(PriceProvider):
    """Yahoo Finance chart and search endpoints. Quotes stay in the listing currency."""

    name: ClassVar[str] = "Yahoo Finance"
    id: ClassVar[str] = "yahoo"
    capabilities: ClassVar[frozenset[Capability]] = frozenset(
        {Capability.HISTORY, Capability.HISTORY_WINDOW, Capability.SEARCH}
    )

    def __init__(
        self,
        *,
        base_url: str = "https://query1.finance.yahoo.com",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.client = HttpClient(label=self.name, base_url=base_url, timeout=timeout, session=session)

    def get_prices(self, symbols: list[str], currency: str) -> list[CoinPrice]:
        requested = currency.upper()
        now = datetime.now(timezone.utc)
        results: list[CoinPrice] = []
        for symbol in symbols:
            chart = self._fetch_chart(symbol, {"range": "5d", "interval": "1d"})
            if chart is None:
                continue
            meta = self._meta(chart, symbol)
            quoted_in = self._check_currency(symbol, meta, requested)
            price = meta.get("regularMarketPrice")
            if price is None:
                logger.debug("Yahoo Finance returned no market price for %s", symbol)
                continue

            price_value = parse_decimal(price, source="Yahoo Finance", field="regularMarketPrice")
            previous = parse_optional_decimal(
                meta.get("chartPreviousClose") or meta.get("previousClose"),
                source="Yahoo Finance",
                field="chartPreviousClose",
            )
            change = None
            if previous:
                change = (price_value - previous) / previous * Decimal(100)

            results.append(
                CoinPrice(
                    symbol=str(meta.get("symbol") or symbol).upper(),
                    name=str(meta.get("longName") or meta.get("shortName") or symbol.upper()),
                    price=price_value,
                    change_24h=change,
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
        params = {"range": f"{days}d", "interval": self._bar_size(days, interval)}
        return self._fetch_histories(symbols, currency, params)

    def get_price_history_window(
        self,
        symbols: list[str],
        currency: str,
        start: datetime | None,
        end: datetime,
        interval: HistoryInterval,
    ) -> list[PriceHistory]:
        params: dict[str, Any] = {"period2": int(end.timestamp())}
        if start is None:
            params["range"] = "max"
            params["interval"] = self._bar_size(None, interval)
        else:
            params["period1"] = int(start.timestamp())
            span_days = max((end - start).days, 1)
            params["interval"] = self._bar_size(span_days, interval)
        return self._fetch_histories(symbols, currency, params)

    def search_tickers(self, query: str, limit: int) -> list[TickerMatch]:
        payload = self.client.get_json(
            "/v1/finance/search",
            params={"q": query, "quotesCount": limit, "newsCount": 0},
        )
        quotes = payload.get("quotes") if isinstance(payload, dict) else None
        if not isinstance(quotes, list):
            raise ParseError("Yahoo Finance search JSON: missing 'quotes' array")

        matches = [
            TickerMatch(
                symbol=str(quote.get("symbol", "")),
                name=str(quote.get("longname") or quote.get("shortname") or ""),
                exchange=str(quote.get("exchDisp") or quote.get("exchange") or ""),
                asset_type=str(quote.get("typeDisp") or quote.get("quoteType") or "").lower(),
                provider=self.name,
            )
            for quote in quotes[:limit]
            if isinstance(quote, dict) and quote.get("symbol")
        ]
        if not matches:
            raise NoResultsError(f"no tickers matching '{query}'")
        return matches

    def _fetch_histories(self, symbols: list[str], currency: str, params: dict[str, Any]) -> list[PriceHistory]:
        requested = currency.upper()
        histories: list[PriceHistory] = []
        for symbol in symbols:
            chart = self._fetch_chart(symbol, params)
            if chart is None:
                continue
            meta = self._meta(chart, symbol)
            quoted_in = self._check_currency(symbol, meta, requested)
            histories.append(
                PriceHistory(
                    symbol=str(meta.get("symbol") or symbol).upper(),
                    name=str(meta.get("longName") or meta.get("shortName") or symbol.upper()),
                    currency=quoted_in,
                    provider=self.name,
                    points=self._parse_points(chart, symbol),
                )
            )

        if not histories:
            raise NoResultsError()
        return histories

    def _fetch_chart(self, symbol: str, params: dict[str, Any]) -> dict[str, Any] | None:
        try:
            payload = self.client.get_json(f"/v8/finance/chart/{symbol.upper()}", params=params)
        except ApiError as exc:
            if exc.status_code == 404:
                logger.debug("Yahoo Finance does not know symbol %s", symbol)
                return None
            raise

        chart = payload.get("chart") if isinstance(payload, dict) else None
        if not isinstance(chart, dict):
            raise ParseError(f"Yahoo Finance JSON for {symbol}: missing 'chart' object")
        error = chart.get("error")
        if isinstance(error, dict) and error.get("description"):
            raise ApiError(f"Yahoo Finance: {error['description']}", payload=payload)
        results = chart.get("result")
        if not results:
            return None
        if not isinstance(results, list) or not isinstance(results[0], dict):
            raise ParseError(f"Yahoo Finance JSON for {symbol}: malformed 'result'")
        return results[0]

    @staticmethod
    def _meta(chart: dict[str, Any], symbol: str) -> dict[str, Any]:
        meta = chart.get("meta")
        if not isinstance(meta, dict):
            raise ParseError(f"Yahoo Finance JSON for {symbol}: missing 'meta' object")
        return meta

    @staticmethod
    def _check_currency(symbol: str, meta: dict[str, Any], requested: str) -> str:
        quoted_in = str(meta.get("currency") or requested).upper()
        if quoted_in != requested:
            raise ConfigError(
                f"Yahoo Finance does not convert currencies: {symbol.upper()} is quoted in {quoted_in}, "
                f"requested {requested} -- use --currency {quoted_in}"
            )
        return quoted_in

    @staticmethod
    def _parse_points(chart: dict[str, Any], symbol: str) -> list[PricePoint]:
        timestamps = chart.get("timestamp") or []
        indicators = chart.get("indicators")
        try:
            closes = indicators["quote"][0]["close"] if timestamps else []
        except (KeyError, IndexError, TypeError) as exc:
            raise ParseError(f"Yahoo Finance JSON for {symbol}: missing close prices") from exc
        if len(closes) != len(timestamps):
            raise ParseError(f"Yahoo Finance JSON for {symbol}: timestamp/close length mismatch")

        points: list[PricePoint] = []
        for raw_ts, close in zip(timestamps, closes):
            # Bars without trades carry a null close.
            if close is None:
                continue
            points.append(
                PricePoint(
                    timestamp=datetime.fromtimestamp(int(raw_ts), tz=timezone.utc),
                    price=parse_decimal(close, source="Yahoo Finance", field="close"),
                )
            )
        return points

    @staticmethod
    def _bar_size(days: int | None, interval: HistoryInterval) -> str:
        if interval is HistoryInterval.HOURLY:
            if days is None or days > HOURLY_MAX_DAYS:
                raise ConfigError(
                    f"Yahoo Finance serves hourly data for at most {HOURLY_MAX_DAYS} days -- "
                    "pick a shorter range or use --sampling daily"
                )
            return "1h"
        if interval is HistoryInterval.AUTO and days is not None and days <= AUTO_HOURLY_MAX_DAYS:
            return "1h"
        return "1d"


__all__ = ["YahooFinanceSource"]
