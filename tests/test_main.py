from __future__ import annotations

import json
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

import pytest

import main
from domain.chart_range import ChartRange
from domain.pricing import HistoryInterval
from tests.helpers.stub_providers import StubFxSource, StubPriceProvider, make_history


@pytest.fixture(autouse=True)
def _isolated(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("COINMARKETCAP_API_KEY", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(main, "setup_logging", lambda verbosity: None)


@pytest.fixture
def stub_provider(monkeypatch: pytest.MonkeyPatch) -> StubPriceProvider:
    provider = StubPriceProvider({"BTC": Decimal("50000"), "ETH": Decimal("2500")})
    monkeypatch.setattr(main, "available_providers", lambda api_key=None: [provider])
    return provider


@pytest.fixture
def stub_fx(monkeypatch: pytest.MonkeyPatch) -> StubFxSource:
    fx = StubFxSource({"EUR": Decimal("0.8")})
    monkeypatch.setattr(main, "FrankfurterSource", lambda: fx)
    return fx


def test_parser_defaults() -> None:
    args = main.parse_args(["btc"])

    assert args.interval is ChartRange.ONE_MONTH
    assert args.sampling is HistoryInterval.AUTO
    assert args.search_limit == 10
    assert args.verbose == 0


def test_parser_normalises_presets_and_sampling() -> None:
    args = main.parse_args(["--chart", "--interval", "ytd", "--sampling", "DAILY", "btc"])

    assert args.interval is ChartRange.YTD
    assert args.sampling is HistoryInterval.DAILY


@pytest.mark.parametrize(
    "argv",
    [
        ["--start-date", "2026-01-01", "btc"],
        ["--search", "apple", "btc"],
        ["--search", "apple", "--chart"],
        ["--search-limit", "0", "--search", "apple"],
        ["--chart", "--start-date", "01/02/2026", "btc"],
    ],
)
def test_parser_rejects_invalid_combinations(argv: list[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main.parse_args(argv)

    assert excinfo.value.code == 2


@pytest.mark.parametrize(
    ("symbols", "search", "expected"),
    [
        ([], "  apple ", "apple"),
        (["search", "apple", "inc"], None, "apple inc"),
        (["search", "search", "apple"], None, "apple"),
        (["search"], None, ""),
        (["btc"], None, None),
    ],
)
def test_resolve_search_query(symbols: list[str], search: str | None, expected: str | None) -> None:
    assert main.resolve_search_query(symbols, search) == expected


def test_spot_prices_table(stub_provider: StubPriceProvider, capsys: pytest.CaptureFixture[str]) -> None:
    assert main.main(["-p", "stub", "btc", "eth"]) == 0

    out = capsys.readouterr().out
    assert "50,000.00 USD" in out
    assert "ETH" in out
    assert stub_provider.calls == [("get_prices", ["btc", "eth"], "USD")]


def test_spot_prices_json_uses_currency_flag(
    stub_provider: StubPriceProvider, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main.main(["-p", "stub", "-c", "eur", "--json", "btc"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload[0]["symbol"] == "BTC"
    assert payload[0]["price"] == 50000
    assert payload[0]["currency"] == "EUR"


def test_calc_mode_orders_fiat_first(
    stub_provider: StubPriceProvider, stub_fx: StubFxSource, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main.main(["-p", "stub", "--json", "100USD", "btc", "eur"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert [entry["to_symbol"] for entry in payload] == ["EUR", "BTC"]
    assert payload[0]["to_amount"] == 80
    assert payload[1]["to_amount"] == 0.002


def test_calc_mode_without_targets_fails(stub_provider: StubPriceProvider, capsys: pytest.CaptureFixture[str]) -> None:
    assert main.main(["-p", "stub", "3.5EUR"]) == 1

    assert "calc mode requires at least one target" in capsys.readouterr().err


def test_calc_mode_rejects_chart(stub_provider: StubPriceProvider, capsys: pytest.CaptureFixture[str]) -> None:
    assert main.main(["-p", "stub", "--chart", "3.5EUR", "btc"]) == 1

    assert "chart mode is only available for direct symbol lookup" in capsys.readouterr().err


def test_unknown_provider_is_reported(stub_provider: StubPriceProvider, capsys: pytest.CaptureFixture[str]) -> None:
    assert main.main(["-p", "kraken", "btc"]) == 1

    assert "Error: unknown provider 'kraken'" in capsys.readouterr().err


def test_no_symbols_is_reported(stub_provider: StubPriceProvider, capsys: pytest.CaptureFixture[str]) -> None:
    assert main.main([]) == 1

    assert "no symbols provided" in capsys.readouterr().err


def test_list_providers(capsys: pytest.CaptureFixture[str]) -> None:
    assert main.main(["--list-providers"]) == 0

    out = capsys.readouterr().out
    for provider_id in ("coingecko", "stooq", "yahoo", "cmc"):
        assert provider_id in out


def test_search_on_provider_without_search(
    stub_provider: StubPriceProvider, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main.main(["-p", "stub", "search", "apple"]) == 1

    assert "provider 'stub' does not support ticker search" in capsys.readouterr().err


def test_empty_search_query_is_reported(capsys: pytest.CaptureFixture[str]) -> None:
    assert main.main(["search"]) == 1

    assert "search mode requires a query" in capsys.readouterr().err


def test_chart_falls_back_and_clips_to_dates(
    stub_provider: StubPriceProvider, capsys: pytest.CaptureFixture[str]
) -> None:
    stub_provider.histories = [make_history("BTC", [1, 5, 8, 12])]

    code = main.main(
        ["-p", "stub", "--chart", "--json", "--start-date", "2026-02-05", "--end-date", "2026-02-10", "btc"]
    )

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert [point["timestamp"][:10] for point in payload[0]["points"]] == ["2026-02-05", "2026-02-08"]
    assert stub_provider.calls[0][0] == "get_price_history"


def test_chart_renders_sparkline(stub_provider: StubPriceProvider, capsys: pytest.CaptureFixture[str]) -> None:
    stub_provider.histories = [make_history("BTC", [5, 6, 7])]

    assert main.main(["-p", "stub", "--chart", "--start-date", "2026-02-01", "--end-date", "2026-02-10", "btc"]) == 0

    out = capsys.readouterr().out
    assert "2026-02-01..2026-02-10" in out
    assert "▁" in out and "█" in out


def test_fiat_chart_uses_exchange_rates(stub_fx: StubFxSource, capsys: pytest.CaptureFixture[str]) -> None:
    stub_fx.histories = [make_history("EUR", [3, 4])]

    code = main.main(["--chart", "--json", "--start-date", "2026-02-01", "--end-date", "2026-02-10", "usd", "eur"])

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload[0]["symbol"] == "EUR"
    assert stub_fx.calls[0][:3] == ("get_history", "USD", ["EUR"])


def test_fiat_chart_rejects_hourly(stub_fx: StubFxSource, capsys: pytest.CaptureFixture[str]) -> None:
    assert main.main(["--chart", "--sampling", "hourly", "usd", "eur"]) == 1

    assert "fiat chart mode supports daily history only" in capsys.readouterr().err


def test_future_end_date_is_rejected(stub_provider: StubPriceProvider, capsys: pytest.CaptureFixture[str]) -> None:
    future = (date.today() + timedelta(days=400)).isoformat()

    assert main.main(["-p", "stub", "--chart", "--end-date", future, "btc"]) == 1

    assert "cannot be in the future" in capsys.readouterr().err


def test_start_after_end_is_rejected(stub_provider: StubPriceProvider, capsys: pytest.CaptureFixture[str]) -> None:
    code = main.main(["-p", "stub", "--chart", "--start-date", "2026-02-10", "--end-date", "2026-02-01", "btc"])

    assert code == 1
    assert "cannot be after" in capsys.readouterr().err


def test_api_key_flag_reaches_registry(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    seen: list[str | None] = []

    def _providers(api_key: str | None = None) -> list[StubPriceProvider]:
        seen.append(api_key)
        return [StubPriceProvider({"BTC": Decimal("1")})]

    monkeypatch.setattr(main, "available_providers", _providers)

    assert main.main(["-p", "stub", "--api-key", "secret", "btc"]) == 0
    assert seen == ["secret"]


def test_preset_before_first_representable_date_is_clamped(
    stub_provider: StubPriceProvider, capsys: pytest.CaptureFixture[str]
) -> None:
    stub_provider.histories = [make_history("BTC", [5])]

    code = main.main(["-p", "stub", "--chart", "--interval", "1Y", "--end-date", "0001-06-01", "btc"])

    assert code == 1
    assert "no results found" in capsys.readouterr().err
    assert stub_provider.calls[0][0] == "get_price_history"
