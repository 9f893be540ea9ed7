from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import StrEnum


class HistoryInterval(StrEnum):
    """Requested sampling density. Providers may return coarser data."""

    AUTO = "auto"
    HOURLY = "hourly"
    DAILY = "daily"


@dataclass(frozen=True)
class CoinPrice:
    symbol: str
    name: str
    price: Decimal
    change_24h: Decimal | None
    market_cap: Decimal | None
    currency: str
    provider: str
    timestamp: datetime


@dataclass(frozen=True)
class PricePoint:
    timestamp: datetime
    price: Decimal


@dataclass
class PriceHistory:
    """Historical series for one symbol.

    ``points`` is chronologically ordered as returned by the provider; history
    windowing removes points in place.
    """

    symbol: str
    name: str
    currency: str
    provider: str
    points: list[PricePoint] = field(default_factory=list)


@dataclass(frozen=True)
class TickerMatch:
    symbol: str
    name: str
    exchange: str
    asset_type: str
    provider: str


@dataclass(frozen=True)
class Conversion:
    """Result of converting a fiat amount into one target.

    Rate conventions differ per leg:
    - fiat targets: ``rate`` is one target unit expressed in the source currency (inverse FX rate).
    - crypto targets: ``rate`` is the price of one target unit in the source currency.
    """

    from_amount: Decimal
    from_currency: str
    to_symbol: str
    to_name: str
    to_amount: Decimal
    rate: Decimal
    provider: str
    timestamp: datetime


__all__ = [
    "CoinPrice",
    "Conversion",
    "HistoryInterval",
    "PriceHistory",
    "PricePoint",
    "TickerMatch",
]
