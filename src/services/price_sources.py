from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import ClassVar, Protocol

from domain.errors import UnsupportedCapabilityError
from domain.pricing import CoinPrice, HistoryInterval, PriceHistory, TickerMatch

WINDOW_UNSUPPORTED_MESSAGE = "does not support explicit chart date windows"


class Capability(StrEnum):
    HISTORY = "history"
    HISTORY_WINDOW = "history_window"
    SEARCH = "search"


_UNSUPPORTED_MESSAGES: dict[Capability, str] = {
    Capability.HISTORY: "does not support chart mode",
    Capability.HISTORY_WINDOW: WINDOW_UNSUPPORTED_MESSAGE,
    Capability.SEARCH: "does not support ticker search",
}


class PriceProvider(Protocol):
    """Contract shared by every price source.

    ``get_prices`` is mandatory. The optional operations are only usable when
    the provider lists the matching entry in ``capabilities``; the defaults
    below raise ``UnsupportedCapabilityError`` naming the provider.
    """

    name: ClassVar[str]
    id: ClassVar[str]
    capabilities: ClassVar[frozenset[Capability]] = frozenset()

    def get_prices(self, symbols: list[str], currency: str) -> list[CoinPrice]: ...

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def get_price_history(
        self,
        symbols: list[str],
        currency: str,
        days: int,
        interval: HistoryInterval,
    ) -> list[PriceHistory]:
        raise self.unsupported(Capability.HISTORY)

    def get_price_history_window(
        self,
        symbols: list[str],
        currency: str,
        start: datetime | None,
        end: datetime,
        interval: HistoryInterval,
    ) -> list[PriceHistory]:
        raise self.unsupported(Capability.HISTORY_WINDOW)

    def search_tickers(self, query: str, limit: int) -> list[TickerMatch]:
        raise self.unsupported(Capability.SEARCH)

    def unsupported(self, capability: Capability) -> UnsupportedCapabilityError:
        return UnsupportedCapabilityError(
            f"provider '{self.id}' {_UNSUPPORTED_MESSAGES[capability]}",
            provider_id=self.id,
            capability=capability,
        )


class FxRateSource(Protocol):
    """Official exchange rates used for every fiat leg, whatever crypto provider is selected."""

    name: ClassVar[str]

    def get_rates(self, base: str, targets: list[str]) -> dict[str, Decimal]: ...

    def get_history(self, base: str, targets: list[str], days: int) -> list[PriceHistory]: ...


__all__ = [
    "Capability",
    "FxRateSource",
    "PriceProvider",
    "WINDOW_UNSUPPORTED_MESSAGE",
]
