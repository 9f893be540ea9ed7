from __future__ import annotations

from collections.abc import Sequence

from domain.errors import ConfigError

from .coingecko_source import CoinGeckoSource
from .coinmarketcap_source import CoinMarketCapSource
from .price_sources import PriceProvider
from .stooq_source import StooqSource
from .yahoo_source import YahooFinanceSource


def available_providers(api_key: str | None = None) -> list[PriceProvider]:
    """Providers in display order.

    CoinMarketCap is always listed; without ``api_key`` it fails when called.
    The key is never looked up here, callers resolve it from flags, environment
    and config first.
    """

    return [
        CoinGeckoSource(),
        StooqSource(),
        YahooFinanceSource(),
        CoinMarketCapSource(api_key=api_key),
    ]


def resolve_provider(providers: Sequence[PriceProvider], provider_id: str) -> int | None:
    wanted = provider_id.lower()
    for index, provider in enumerate(providers):
        if provider.id.lower() == wanted:
            return index
    return None


def select_provider(providers: Sequence[PriceProvider], provider_id: str) -> PriceProvider:
    index = resolve_provider(providers, provider_id)
    if index is None:
        raise ConfigError(f"unknown provider '{provider_id}' -- use --list-providers to see options")
    return providers[index]


__all__ = ["available_providers", "resolve_provider", "select_provider"]
