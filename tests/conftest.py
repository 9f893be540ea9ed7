from decimal import Decimal

import pytest

from domain.fiat import FiatAmount
from tests.helpers.stub_providers import StubFxSource, StubPriceProvider


@pytest.fixture(scope="function")
def usd_amount() -> FiatAmount:
    return FiatAmount(amount=Decimal("3.5"), currency="USD")


@pytest.fixture(scope="function")
def crypto_provider() -> StubPriceProvider:
    return StubPriceProvider({"BTC": Decimal("50000"), "ETH": Decimal("2500")})


@pytest.fixture(scope="function")
def fx_source() -> StubFxSource:
    return StubFxSource({"EUR": Decimal("0.85"), "GBP": Decimal("0.75")})
