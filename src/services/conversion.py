from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from decimal import Decimal

from domain.errors import NoResultsError
from domain.fiat import FiatAmount, fiat_display_name, is_known_fiat
from domain.pricing import CoinPrice, Conversion

from .price_sources import FxRateSource, PriceProvider

logger = logging.getLogger(__name__)


def partition_targets(targets: Iterable[str]) -> tuple[list[str], list[str]]:
    """Split targets into (fiat, crypto), keeping the input order inside each group."""

    fiat_targets: list[str] = []
    crypto_targets: list[str] = []
    for target in targets:
        (fiat_targets if is_known_fiat(target) else crypto_targets).append(target)
    return fiat_targets, crypto_targets


def fiat_conversions(
    fiat: FiatAmount,
    fiat_targets: list[str],
    rates: dict[str, Decimal],
    *,
    provider: str,
    timestamp: datetime,
) -> list[Conversion]:
    conversions: list[Conversion] = []
    for target in fiat_targets:
        code = target.upper()
        rate = rates.get(code)
        if rate is None:
            logger.debug("No %s rate returned for %s", fiat.currency, code)
            continue
        if rate <= 0:
            logger.debug("Skipping %s: non-positive rate %s", code, rate)
            continue
        conversions.append(
            Conversion(
                from_amount=fiat.amount,
                from_currency=fiat.currency,
                to_symbol=code,
                to_name=fiat_display_name(code),
                to_amount=fiat.amount * rate,
                rate=Decimal(1) / rate,
                provider=provider,
                timestamp=timestamp,
            )
        )
    return conversions


def crypto_conversions(fiat: FiatAmount, prices: list[CoinPrice], *, timestamp: datetime) -> list[Conversion]:
    conversions: list[Conversion] = []
    for price in prices:
        if price.price <= 0:
            logger.debug("Skipping %s: non-positive price %s from %s", price.symbol, price.price, price.provider)
            continue
        conversions.append(
            Conversion(
                from_amount=fiat.amount,
                from_currency=fiat.currency,
                to_symbol=price.symbol,
                to_name=price.name,
                to_amount=fiat.amount / price.price,
                rate=price.price,
                provider=price.provider,
                timestamp=timestamp,
            )
        )
    return conversions


async def convert(
    fiat: FiatAmount,
    targets: list[str],
    crypto_provider: PriceProvider,
    fx_provider: FxRateSource,
) -> list[Conversion]:
    """Convert ``fiat`` into every target.

    Fiat targets are priced by ``fx_provider``, everything else by
    ``crypto_provider``. When both kinds are present the two requests run
    concurrently; a failure in either one fails the whole call. Results list
    fiat conversions first, then crypto conversions, each in input order.
    """

    fiat_targets, crypto_targets = partition_targets(targets)
    if not fiat_targets and not crypto_targets:
        msg = "convert needs at least one target"
        raise ValueError(msg)

    logger.info(
        "Converting %s %s: fiat targets=%s crypto targets=%s provider=%s",
        fiat.amount,
        fiat.currency,
        fiat_targets,
        crypto_targets,
        crypto_provider.id,
    )

    rates: dict[str, Decimal] = {}
    prices: list[CoinPrice] = []
    if fiat_targets and crypto_targets:
        rates, prices = await asyncio.gather(
            asyncio.to_thread(fx_provider.get_rates, fiat.currency, fiat_targets),
            asyncio.to_thread(crypto_provider.get_prices, crypto_targets, fiat.currency),
        )
    elif fiat_targets:
        rates = await asyncio.to_thread(fx_provider.get_rates, fiat.currency, fiat_targets)
    else:
        prices = await asyncio.to_thread(crypto_provider.get_prices, crypto_targets, fiat.currency)

    now = datetime.now(timezone.utc)
    conversions = fiat_conversions(fiat, fiat_targets, rates, provider=fx_provider.name, timestamp=now)
    conversions.extend(crypto_conversions(fiat, prices, timestamp=now))
    if not conversions:
        raise NoResultsError()
    return conversions


__all__ = ["convert", "crypto_conversions", "fiat_conversions", "partition_targets"]
