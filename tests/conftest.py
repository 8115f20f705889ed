from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from intentpay.assets.registry import COMMON_ASSETS, default_registry
from intentpay.core.config import Config
from intentpay.core.types import Quote, format_dt
from intentpay.wallet.account import SimulatedAccount

NEAR = COMMON_ASSETS["NEAR"]
USDC_BASE = COMMON_ASSETS["USDC_BASE"]
ONE_NEAR = 10**24


class FakeClock:
    """Settable UTC clock."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeTimer:
    """Monotonic time plus a sleep that advances it instead of waiting."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def timer():
    return FakeTimer()


@pytest.fixture
def config():
    return Config(
        account_id="alice.near",
        status_poll_interval=5.0,
        settlement_timeout=60.0,
    )


@pytest.fixture
def account():
    """Account holding 5 NEAR natively and 1 NEAR already deposited."""
    return SimulatedAccount(
        "alice.near",
        native_balance=5 * ONE_NEAR,
        balances={NEAR: ONE_NEAR},
    )


@pytest.fixture
def quote_payload(clock):
    """Factory for ``POST /v0/quote`` response bodies."""

    def _make(
        amount_in: int = ONE_NEAR // 10,
        amount_out: int = 250_000,
        deposit_address: str = "0xdeposit",
        expires_in: timedelta = timedelta(minutes=10),
        **quote_fields: Any,
    ) -> dict[str, Any]:
        quote = {
            "depositAddress": deposit_address,
            "amountIn": str(amount_in),
            "amountInFormatted": "0.1",
            "amountOut": str(amount_out),
            "amountOutFormatted": "0.25",
            "minAmountOut": str(amount_out * 99 // 100),
            "deadline": format_dt(clock() + expires_in),
            "timeEstimate": 30,
        }
        quote.update(quote_fields)
        return {
            "correlationId": f"corr-{deposit_address}",
            "timestamp": format_dt(clock()),
            "quote": quote,
            "quoteRequest": {"dry": False},
        }

    return _make


@pytest.fixture
def make_quote(quote_payload):
    """Factory for parsed Quote objects."""

    def _make(**kwargs: Any) -> Quote:
        return Quote.from_api_response(quote_payload(**kwargs))

    return _make
