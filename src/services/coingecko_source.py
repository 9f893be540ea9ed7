from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, ClassVar

import requests

from domain.errors import ConfigError, NoResultsError, ParseError
from domain.pricing import CoinPrice, HistoryInterval, PriceHistory, PricePoint, TickerMatch

from .http_client import HttpClient, parse_decimal, parse_optional_decimal
from .price_sources import Capability, PriceProvider

logger = logging.getLogger(__name__)

# Hourly granularity is only served automatically for ranges up to 90 days.
HOURLY_MAX_DAYS = 90

# ticker -> (CoinGecko API id, display name)
_KNOWN_COINS: dict[str, tuple[str, str]] = {
    "btc": ("bitcoin", "Bitcoin"),
    "bitcoin": ("bitcoin", "Bitcoin"),
    "eth": ("ethereum", "Ethereum"),
    "ethereum": ("ethereum", "Ethereum"),
    "usdt": ("tether", "Tether"),
    "tether": ("tether", "Tether"),
    "bnb": ("binancecoin", "BNB"),
    "sol": ("solana", "Solana"),
    "solana": ("solana", "Solana"),
    "xrp": ("ripple", "XRP"),
    "ripple": ("ripple", "XRP"),
    "usdc": ("usd-coin", "USDC"),
    "ada": ("cardano", "Cardano"),
    "cardano": ("cardano", "Cardano"),
    "doge": ("dogecoin", "Dogecoin"),
    "dogecoin": ("dogecoin", "Dogecoin"),
    "dot": ("polkadot", "Polkadot"),
    "polkadot": ("polkadot", "Polkadot"),
    "matic": ("matic-network", "Polygon"),
    "polygon": ("matic-network", "Polygon"),
    "ltc": ("litecoin", "Litecoin"),
    "litecoin": ("litecoin", "Litecoin"),
    "avax": ("avalanche-2", "Avalanche"),
    "avalanche": ("avalanche-2", "Avalanche"),
    "link": ("chainlink", "Chainlink"),
    "chainlink": ("chainlink", "Chainlink"),
    "atom": ("cosmos", "Cosmos"),
    "cosmos": ("cosmos", "Cosmos"),
    "uni": ("uniswap", "Uniswap"),
    "uniswap": ("uniswap", "Uniswap"),
    "xlm": ("stellar", "Stellar"),
    "stellar": ("stellar", "Stellar"),
    "xmr": ("monero", "Monero"),
    "monero": ("monero", "Monero"),
    "shib": ("shiba-inu", "Shiba Inu"),
    "trx": ("tron", "TRON"),
    "tron": ("tron", "TRON"),
    "ton": ("the-open-network", "Toncoin"),
    "pepe": ("pepe", "Pepe"),
    "near": ("near", "NEAR"),
    "apt": ("aptos", "Aptos"),
    "aptos": ("aptos", "Aptos"),
    "arb": ("arbitrum", "Arbitrum"),
    "arbitrum": ("arbitrum", "Arbitrum"),
    "op": ("optimism", "Optimism"),
    "optimism": ("optimism", "Optimism"),
    "sui": ("sui", "Sui"),
}


def resolve_coin(symbol: str) -> tuple[str, str]:
    """Map a ticker to its CoinGecko id and display name; unknown tickers are used as ids."""

    lower = symbol.lower()
    if lower in _KNOWN_COINS:
        return _KNOWN_COINS[lower]
    return lower, lower.capitalize()


class CoinGeckoSource(PriceProvider):
    """CoinGecko public API; no key required."""

    name: ClassVar[str] = "CoinGecko"
    id: ClassVar[str] = "coingecko"
    capabilities: ClassVar[frozenset[Capability]] = frozenset(
        {Capability.HISTORY, Capability.HISTORY_WINDOW, Capability.SEARCH}
    )

    def __init__(
        self,
        *,
        base_url: str = "https://api.coingecko.com/api/v3",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.client = HttpClient(label=self.name, base_url=base_url, timeout=timeout, session=session)

    def get_prices(self, symbols: list[str], currency: str) -> list[CoinPrice]:
        resolved = [resolve_coin(symbol) for symbol in symbols]
        cur = currency.lower()
        payload = self.client.get_json(
            "/simple/price",
            params={
                "ids": ",".join(coin_id for coin_id, _ in resolved),
                "vs_currencies": cur,
                "include_24hr_change": "true",
                "include_market_cap": "true",
            },
        )
        if not isinstance(payload, dict):
            raise ParseError(f"CoinGecko JSON: expected an object, got {type(payload).__name__}")

        now = datetime.now(timezone.utc)
        results: list[CoinPrice] = []
        for symbol, (coin_id, display_name) in zip(symbols, resolved):
            coin_data = payload.get(coin_id)
            if not isinstance(coin_data, dict) or coin_data.get(cur) is None:
                logger.debug("CoinGecko has no %s price for %s", cur, coin_id)
                continue
            results.append(
                CoinPrice(
                    symbol=symbol.upper(),
                    name=display_name,
                    price=parse_decimal(coin_data[cur], source=self.name, field=cur),
                    change_24h=parse_optional_decimal(coin_data.get(f"{cur}_24h_change"), source=self.name, field="24h_change"),
                    market_cap=parse_optional_decimal(coin_data.get(f"{cur}_market_cap"), source=self.name, field="market_cap"),
                    currency=cur.upper(),
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
        params: dict[str, Any] = {"vs_currency": currency.lower(), "days": days}
        if interval is HistoryInterval.DAILY:
            params["interval"] = "daily"
        elif interval is HistoryInterval.HOURLY and days > HOURLY_MAX_DAYS:
            raise ConfigError(
                f"CoinGecko serves hourly data for at most {HOURLY_MAX_DAYS} days -- "
                "pick a shorter range or use --sampling daily"
            )

        return self._fetch_histories(symbols, currency, "/market_chart", params)

    def get_price_history_window(
        self,
        symbols: list[str],
        currency: str,
        start: datetime | None,
        end: datetime,
        interval: HistoryInterval,
    ) -> list[PriceHistory]:
        start_ts = int(start.timestamp()) if start else 0
        if interval is HistoryInterval.HOURLY and (end.timestamp() - start_ts) > HOURLY_MAX_DAYS * 86_400:
            raise ConfigError(
                f"CoinGecko serves hourly data for at most {HOURLY_MAX_DAYS} days -- "
                "pick a shorter range or use --sampling daily"
            )
        params = {"vs_currency": currency.lower(), "from": start_ts, "to": int(end.timestamp())}
        return self._fetch_histories(symbols, currency, "/market_chart/range", params)

    def search_tickers(self, query: str, limit: int) -> list[TickerMatch]:
        payload = self.client.get_json("/search", params={"query": query})
        coins = payload.get("coins") if isinstance(payload, dict) else None
        if not isinstance(coins, list):
            raise ParseError("CoinGecko search JSON: missing 'coins' array")

        matches = [
            TickerMatch(
                symbol=str(coin.get("symbol", "")).upper(),
                name=str(coin.get("name", "")),
                exchange=self.name,
                asset_type="crypto",
                provider=self.name,
            )
            for coin in coins[:limit]
            if isinstance(coin, dict)
        ]
        if not matches:
            raise NoResultsError(f"no tickers matching '{query}'")
        return matches

    def _fetch_histories(
        self,
        symbols: list[str],
        currency: str,
        suffix: str,
        params: dict[str, Any],
    ) -> list[PriceHistory]:
        histories: list[PriceHistory] = []
        for symbol in symbols:
            coin_id, display_name = resolve_coin(symbol)
            payload = self.client.get_json(f"/coins/{coin_id}{suffix}", params=params)
            prices = payload.get("prices") if isinstance(payload, dict) else None
            if not isinstance(prices, list):
                raise ParseError(f"CoinGecko market chart JSON for {coin_id}: missing 'prices' array")

            points = [self._parse_point(entry, coin_id) for entry in prices]
            histories.append(
                PriceHistory(
                    symbol=symbol.upper(),
                    name=display_name,
                    currency=currency.upper(),
                    provider=self.name,
                    points=points,
                )
            )
        if not histories:
            raise NoResultsError()
        return histories

    @staticmethod
    def _parse_point(entry: Any, coin_id: str) -> PricePoint:
        if not isinstance(entry, list) or len(entry) < 2 or entry[0] is None or entry[1] is None:
            raise ParseError(f"CoinGecko market chart JSON for {coin_id}: malformed price entry {entry!r}")
        timestamp = datetime.fromtimestamp(int(entry[0]) / 1000, tz=timezone.utc)
        return PricePoint(timestamp=timestamp, price=parse_decimal(entry[1], source="CoinGecko", field="prices"))


__all__ = ["CoinGeckoSource", "resolve_coin"]
