from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, ClassVar

import requests

from domain.errors import NoResultsError, ParseError
from domain.fiat import fiat_display_name
from domain.pricing import PriceHistory, PricePoint

from .http_client import HttpClient, parse_decimal
from .price_sources import FxRateSource

logger = logging.getLogger(__name__)

# Frankfurter has no ECB reference rates before this day.
FIRST_RATES_DAY = date(1999, 1, 4)


class FrankfurterSource(FxRateSource):
    """Daily ECB reference rates served by api.frankfurter.dev.

    Rates read as "1 unit of ``base`` = rate units of target".
    """

    name: ClassVar[str] = "Frankfurter/ECB"
    id: ClassVar[str] = "frankfurter"

    def __init__(
        self,
        *,
        base_url: str = "https://api.frankfurter.dev/v1",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.client = HttpClient(label="Frankfurter", base_url=base_url, timeout=timeout, session=session)

    def get_rates(self, base: str, targets: list[str]) -> dict[str, Decimal]:
        payload = self.client.get_json(
            "/latest",
            params={"from": base.upper(), "to": ",".join(target.upper() for target in targets)},
        )
        rates = self._parse_rate_map(self._rates_object(payload), context="latest")
        logger.debug("Frankfurter rates for %s: %s", base.upper(), rates)
        if not rates:
            raise NoResultsError()
        return rates

    def get_history(
        self,
        base: str,
        targets: list[str],
        days: int,
        *,
        today: date | None = None,
    ) -> list[PriceHistory]:
        base_code = base.upper()
        target_codes = [target.upper() for target in targets]
        end_day = today or datetime.now(timezone.utc).date()
        start_day = max(end_day - timedelta(days=days), FIRST_RATES_DAY)

        payload = self.client.get_json(
            f"/{start_day.isoformat()}..{end_day.isoformat()}",
            params={"from": base_code, "to": ",".join(target_codes)},
        )
        by_day = self._rates_object(payload)

        series: dict[str, list[PricePoint]] = {code: [] for code in target_codes}
        for raw_day in sorted(by_day):
            try:
                day = date.fromisoformat(raw_day)
            except ValueError as exc:
                raise ParseError(f"Frankfurter JSON: invalid date key {raw_day!r}") from exc
            day_rates = self._parse_rate_map(by_day[raw_day], context=raw_day)
            timestamp = datetime.combine(day, time.min, tzinfo=timezone.utc)
            for code, rate in day_rates.items():
                if code in series:
                    series[code].append(PricePoint(timestamp=timestamp, price=rate))

        histories = [
            PriceHistory(
                symbol=code,
                name=fiat_display_name(code),
                currency=base_code,
                provider=self.name,
                points=points,
            )
            for code, points in series.items()
            if points
        ]
        if not histories:
            raise NoResultsError()
        return histories

    @staticmethod
    def _rates_object(payload: Any) -> dict[str, Any]:
        rates = payload.get("rates") if isinstance(payload, dict) else None
        if not isinstance(rates, dict):
            raise ParseError("Frankfurter JSON: missing 'rates' object")
        return rates

    @staticmethod
    def _parse_rate_map(raw: Any, *, context: str) -> dict[str, Decimal]:
        if not isinstance(raw, dict):
            raise ParseError(f"Frankfurter JSON: rates for {context} are not an object")
        return {
            str(code).upper(): parse_decimal(value, source="Frankfurter JSON", field=str(code))
            for code, value in raw.items()
        }


__all__ = ["FIRST_RATES_DAY", "FrankfurterSource"]
