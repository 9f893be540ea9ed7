from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import date, datetime, timezone
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Sequence

from config import APP_NAME, AppSettings, load_settings
from domain.chart_range import ChartRange, compute_fetch_days, format_range_label, window_bounds
from domain.errors import ConfigError, PriceLookupError
from domain.fiat import is_known_fiat, parse_fiat_amount
from domain.pricing import HistoryInterval
from services.conversion import convert
from services.frankfurter_source import FrankfurterSource
from services.history import fetch_fiat_history, fetch_history
from services.price_sources import Capability, PriceProvider
from services.provider_registry import available_providers, select_provider
from utils.json_output import print_json
from utils.logging_setup import setup_logging
from utils.table_output import (
    print_conversions_table,
    print_history_charts,
    print_table,
    print_ticker_matches_table,
)

logger = logging.getLogger(__name__)

MAX_SEARCH_LIMIT = 50


def app_version() -> str:
    try:
        return version(APP_NAME)
    except PackageNotFoundError:
        return "0.0.0+unknown"


def _chart_date(raw: str) -> date:
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("invalid date, expected format YYYY-MM-DD") from exc


def _chart_range(raw: str) -> ChartRange:
    try:
        return ChartRange(raw.upper())
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid interval preset {raw!r}") from exc


def _sampling(raw: str) -> HistoryInterval:
    try:
        return HistoryInterval(raw.lower())
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid sampling {raw!r}") from exc


def _search_limit(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid search limit {raw!r}") from exc
    if not 1 <= value <= MAX_SEARCH_LIMIT:
        raise argparse.ArgumentTypeError(f"search limit must be between 1 and {MAX_SEARCH_LIMIT}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=APP_NAME, description="Fetch crypto and stock prices from your terminal")
    parser.add_argument("symbols", nargs="*", help="Asset symbols to look up (e.g. btc eth aapl msft)")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("--chart", action="store_true", help="Plot historical price charts")
    parser.add_argument(
        "--interval",
        type=_chart_range,
        choices=list(ChartRange),
        default=ChartRange.ONE_MONTH,
        metavar="{" + ",".join(preset.value for preset in ChartRange) + "}",
        help="Chart interval preset (default: 1M)",
    )
    parser.add_argument(
        "--sampling",
        type=_sampling,
        choices=list(HistoryInterval),
        default=HistoryInterval.AUTO,
        help="Sampling density for chart mode",
    )
    parser.add_argument("--end-date", type=_chart_date, help="End date for chart mode in UTC (YYYY-MM-DD)")
    parser.add_argument(
        "--start-date",
        type=_chart_date,
        help="Start date for chart mode in UTC (YYYY-MM-DD). Overrides --interval preset.",
    )
    parser.add_argument("-p", "--provider", help="Price provider to use (default: coingecko)")
    parser.add_argument("-c", "--currency", help="Fiat currency for prices (default: USD)")
    parser.add_argument("--api-key", help="API key for providers that require one (env: COINMARKETCAP_API_KEY)")
    parser.add_argument("--config", type=Path, help="Explicit config file path (overrides XDG lookup)")
    parser.add_argument("--list-providers", action="store_true", help="List available providers")
    parser.add_argument("-s", "--search", help="Search ticker symbols by keyword (provider-dependent)")
    parser.add_argument("--search-limit", type=_search_limit, default=10, help="Max ticker search results (1-50)")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity (-v, -vv, -vvv)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {app_version()}")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)
    if (args.start_date or args.end_date) and not args.chart:
        parser.error("--start-date and --end-date require --chart")
    if args.search is not None and (args.chart or args.symbols):
        parser.error("--search cannot be combined with --chart or positional symbols")
    return args


def resolve_search_query(symbols: Sequence[str], search: str | None) -> str | None:
    """Search mode is entered via ``--search`` or a leading ``search`` token."""

    if search is not None:
        return search.strip()
    if symbols and symbols[0].lower() == "search":
        tokens = [token.strip() for token in symbols[1:] if token.strip()]
        if tokens and tokens[0].lower() == "search":
            tokens.pop(0)
        return " ".join(tokens).strip()
    return None


def print_providers(providers: Sequence[PriceProvider]) -> None:
    print("Available providers:")
    for provider in providers:
        features = ", ".join(capability.value for capability in Capability if provider.supports(capability))
        print(f"  {provider.id:12} {provider.name:16} {features or 'spot prices only'}")


def run(args: argparse.Namespace, settings: AppSettings) -> None:
    providers = available_providers(settings.resolve_api_key(args.api_key))
    currency = settings.resolve_currency(args.currency)
    provider_id = settings.resolve_provider_id(args.provider)

    if args.list_providers:
        print_providers(providers)
        return

    query = resolve_search_query(args.symbols, args.search)
    if query is not None:
        if not query:
            raise ConfigError("search mode requires a query -- usage: cryptoprice --provider stooq --search apple")
        provider = select_provider(providers, provider_id)
        logger.info("Searching tickers on %s for %r (limit %d)", provider.id, query, args.search_limit)
        matches = provider.search_tickers(query, args.search_limit)
        if args.json:
            print_json(matches)
        else:
            print_ticker_matches_table(matches)
        return

    symbols: list[str] = args.symbols
    if not symbols:
        raise ConfigError("no symbols provided -- usage: cryptoprice btc eth")

    today = datetime.now(timezone.utc).date()
    end_date = args.end_date or today
    if end_date > today:
        raise ConfigError("chart end date cannot be in the future")
    start_date = args.start_date or args.interval.start_date(end_date)
    if start_date is not None and start_date > end_date:
        raise ConfigError("chart start date cannot be after chart end date")

    range_label = format_range_label(start_date, end_date, args.interval)
    start_ts, end_ts = window_bounds(start_date, end_date)
    fetch_days = compute_fetch_days(start_date, today)

    if args.chart and is_known_fiat(symbols[0]):
        base, targets = symbols[0].upper(), [symbol.upper() for symbol in symbols[1:]]
        logger.info(
            "Fetching fiat history %s -> %s, range %s, %d days", base, targets, range_label, fetch_days
        )
        histories = fetch_fiat_history(
            FrankfurterSource(), base, targets, start_ts, end_ts, fetch_days, args.sampling
        )
        if args.json:
            print_json(histories)
        else:
            print_history_charts(histories, range_label, HistoryInterval.DAILY)
        return

    provider = select_provider(providers, provider_id)

    fiat = parse_fiat_amount(symbols[0])
    if fiat is not None:
        if args.chart:
            raise ConfigError("chart mode is only available for direct symbol lookup")
        targets = symbols[1:]
        if not targets:
            raise ConfigError("calc mode requires at least one target coin -- usage: cryptoprice 3.5EUR xmr")
        conversions = asyncio.run(convert(fiat, targets, provider, FrankfurterSource()))
        if args.json:
            print_json(conversions)
        else:
            print_conversions_table(conversions)
        return

    if args.chart:
        logger.info(
            "Fetching history from %s for %s in %s, range %s, %d days",
            provider.id,
            symbols,
            currency,
            range_label,
            fetch_days,
        )
        histories = fetch_history(provider, symbols, currency, start_ts, end_ts, fetch_days, args.sampling)
        if args.json:
            print_json(histories)
        else:
            print_history_charts(histories, range_label, args.sampling)
        return

    logger.info("Fetching prices from %s for %s in %s", provider.id, symbols, currency)
    prices = provider.get_prices(symbols, currency)
    if args.json:
        print_json(prices)
    else:
        print_table(prices)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)
    try:
        settings = load_settings(args.config)
        run(args, settings)
    except PriceLookupError as exc:
        logger.debug("fatal error", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
