from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, ClassVar

import requests

from domain.errors import ApiError, ConfigError, NoResultsError, ParseError
from domain.pricing import CoinPrice

from .http_client import HttpClient, parse_decimal, parse_optional_decimal
from .price_sources import PriceProvider

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = (
    "CoinMarketCap requires an API key -- pass --api-key, set COINMARKETCAP_API_KEY "
    "or add api_key under [coinmarketcap] in the config file"
)


class CoinMarketCapSource(PriceProvider):
    """CoinMarketCap pro API. Without a key the provider is listed but every call fails."""

    name: ClassVar[str] = "CoinMarketCap"
    id: ClassVar[str] = "cmc"

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str = "https://pro-api.coinmarketcap.com/v1",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key or None
        self.client = HttpClient(label=self.name, base_url=base_url, timeout=timeout, session=session)

    def get_prices(self, symbols: list[str], currency: str) -> list[CoinPrice]:
        if self.api_key is None:
            raise ConfigError(MISSING_KEY_MESSAGE)

        symbols_upper = [symbol.upper() for symbol in symbols]
        convert = currency.upper()
        payload = self.client.get_json(
            "/cryptocurrency/quotes/latest",
            params={"symbol": ",".join(symbols_upper), "convert": convert},
            headers={"X-CMC_PRO_API_KEY": self.api_key},
        )
        if not isinstance(payload, dict):
            raise ParseError("CMC JSON: expected an object")

        status = payload.get("status")
        if isinstance(status, dict) and status.get("error_message"):
            raise ApiError(f"CoinMarketCap: {status['error_message']}", payload=payload)

        data = payload.get("data")
        if not isinstance(data, dict):
            raise ParseError("CMC JSON: missing 'data' object")

        now = datetime.now(timezone.utc)
        results: list[CoinPrice] = []
        for symbol in symbols_upper:
            coin = self._pick_coin(data.get(symbol))
            if coin is None:
                logger.debug("CoinMarketCap returned no entry for %s", symbol)
                continue
            quotes = coin.get("quote")
            if not isinstance(quotes, dict):
                raise ParseError(f"CMC coin {symbol}: missing 'quote' object")
            quote = quotes.get(convert)
            if not isinstance(quote, dict) or quote.get("price") is None:
                continue

            results.append(
                CoinPrice(
                    symbol=str(coin.get("symbol", symbol)),
                    name=str(coin.get("name", symbol)),
                    price=parse_decimal(quote["price"], source="CMC", field="price"),
                    change_24h=parse_optional_decimal(
                        quote.get("percent_change_24h"), source="CMC", field="percent_change_24h"
                    ),
                    market_cap=parse_optional_decimal(quote.get("market_cap"), source="CMC", field="market_cap"),
                    currency=convert,
                    provider=self.name,
                    timestamp=now,
                )
            )

        if not results:
            raise NoResultsError()
        return results

    @staticmethod
    def _pick_coin(value: Any) -> dict[str, Any] | None:
        # Duplicate tickers come back as an array; the first entry is the highest ranked coin.
        if isinstance(value, list):
            value = value[0] if value else None
        if value is None:
            return None
        if not isinstance(value, dict):
            raise ParseError(f"CMC coin: unexpected entry {value!r}")
        return value


__all__ = ["CoinMarketCapSource", "MISSING_KEY_MESSAGE"]
