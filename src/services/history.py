from __future__ import annotations

import logging
from datetime import datetime

from domain.errors import ConfigError, NoResultsError, UnsupportedCapabilityError
from domain.fiat import is_known_fiat
from domain.pricing import HistoryInterval, PriceHistory

from .price_sources import WINDOW_UNSUPPORTED_MESSAGE, Capability, FxRateSource, PriceProvider

logger = logging.getLogger(__name__)


def filter_histories_by_time_window(
    histories: list[PriceHistory],
    start: datetime | None,
    end: datetime,
) -> list[PriceHistory]:
    """Clip every series to ``[start, end]`` in place and drop series left empty.

    Returns the same list object for convenience.
    """

    for history in histories:
        history.points[:] = [
            point for point in history.points if point.timestamp <= end and (start is None or point.timestamp >= start)
        ]
    histories[:] = [history for history in histories if history.points]
    return histories


def declines_window_support(error: ConfigError) -> bool:
    if isinstance(error, UnsupportedCapabilityError):
        return error.capability == Capability.HISTORY_WINDOW
    return WINDOW_UNSUPPORTED_MESSAGE in str(error)


def fetch_history(
    provider: PriceProvider,
    symbols: list[str],
    currency: str,
    start: datetime | None,
    end: datetime,
    fetch_days: int,
    interval: HistoryInterval,
) -> list[PriceHistory]:
    """Fetch charts for ``symbols`` bounded to ``[start, end]``.

    The explicit window request is tried first. Only when the provider declines
    window support does this fall back to a ``fetch_days`` request; the
    over-fetched points are then clipped to the window.
    """

    try:
        histories = provider.get_price_history_window(symbols, currency, start, end, interval)
    except ConfigError as exc:
        if not declines_window_support(exc):
            raise
        logger.info("%s; falling back to a %d day history request", exc, fetch_days)
        histories = provider.get_price_history(symbols, currency, fetch_days, interval)

    filter_histories_by_time_window(histories, start, end)
    if not histories:
        raise NoResultsError()
    return histories


def fetch_fiat_history(
    fx_provider: FxRateSource,
    base: str,
    targets: list[str],
    start: datetime | None,
    end: datetime,
    fetch_days: int,
    interval: HistoryInterval,
) -> list[PriceHistory]:
    """Daily exchange-rate charts of ``base`` against each fiat target."""

    if not targets:
        raise ConfigError(
            "fiat chart mode requires a base and at least one target currency -- usage: cryptoprice --chart usd eur"
        )
    if not is_known_fiat(base) or any(not is_known_fiat(target) for target in targets):
        raise ConfigError("fiat chart mode only supports fiat currency codes (example: usd eur gbp)")
    if interval is HistoryInterval.HOURLY:
        raise ConfigError(
            "fiat chart mode supports daily history only -- use --sampling auto or --sampling daily"
        )

    histories = fx_provider.get_history(base.upper(), [target.upper() for target in targets], fetch_days)
    filter_histories_by_time_window(histories, start, end)
    if not histories:
        raise NoResultsError()
    return histories


__all__ = [
    "declines_window_support",
    "fetch_fiat_history",
    "fetch_history",
    "filter_histories_by_time_window",
]
