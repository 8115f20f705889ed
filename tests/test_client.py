"""Tests for the IntentPay facade against a mocked 1Click API."""

import json
from datetime import timedelta
from decimal import Decimal

import httpx
import pytest
import pytest_asyncio

from intentpay import IntentPay
from intentpay.assets.registry import COMMON_ASSETS
from intentpay.core.config import Config
from intentpay.core.exceptions import PaymentNotFoundError
from intentpay.core.types import OutcomeKind, format_dt, utc_now
from intentpay.provider.client import OneClickClient
from intentpay.storage.memory import InMemoryStorage
from intentpay.wallet.account import SimulatedAccount

NEAR = COMMON_ASSETS["NEAR"]
ONE_NEAR = 10**24


class FakeProvider:
    """Request handler for httpx.MockTransport that records every call."""

    def __init__(self, status: str = "SUCCESS") -> None:
        self.status = status
        self.calls: list[tuple[str, str]] = []
        self.quote_bodies: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.method, request.url.path))
        if request.url.path == "/v0/quote":
            body = json.loads(request.content)
            self.quote_bodies.append(body)
            return httpx.Response(200, json=self._quote(int(body["amount"])))
        if request.url.path == "/v0/deposit/submit":
            return httpx.Response(200, json={"status": "KNOWN_DEPOSIT_TX"})
        if request.url.path == "/v0/status":
            return httpx.Response(
                200,
                json={"status": self.status, "swapDetails": {"amountOut": "249500"}},
            )
        if request.url.path == "/v0/tokens":
            return httpx.Response(200, json=[{"assetId": NEAR, "symbol": "wNEAR"}])
        return httpx.Response(404, json={"message": "not found"})

    def _quote(self, amount_in: int) -> dict:
        return {
            "correlationId": "corr-1",
            "quote": {
                "depositAddress": "0xdeposit",
                "amountIn": str(amount_in),
                "amountOut": "250000",
                "deadline": format_dt(utc_now() + timedelta(minutes=10)),
            },
        }

    def count(self, path: str) -> int:
        return sum(1 for _, p in self.calls if p == path)


@pytest.fixture
def provider_api():
    return FakeProvider()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def client_config():
    return Config(account_id="alice.near", status_poll_interval=0.01, settlement_timeout=1.0)


@pytest_asyncio.fixture
async def pay(account, client_config, storage, provider_api):
    client = IntentPay(
        account,
        config=client_config,
        storage=storage,
        provider=OneClickClient(
            base_url="https://1click.test", transport=httpx.MockTransport(provider_api)
        ),
    )
    yield client
    await client.close()


@pytest.mark.asyncio
async def test_one_off_payment(pay, account, provider_api) -> None:
    outcome = await pay.pay("0xRecipient", "0.1", "USDC", "Base")

    assert outcome.kind == OutcomeKind.COMPLETED
    assert outcome.settled_amount == 249_500
    assert account.transfers[0].amount == ONE_NEAR // 10
    assert provider_api.quote_bodies[0]["refundTo"] == "alice.near"
    assert provider_api.count("/v0/deposit/submit") == 1


@pytest.mark.asyncio
async def test_insufficient_balance_never_quotes(
    client_config, storage, provider_api
) -> None:
    account = SimulatedAccount("poor.near", native_balance=10, balances={NEAR: 10})
    async with IntentPay(
        account,
        config=client_config.with_updates(account_id="poor.near"),
        storage=storage,
        provider=OneClickClient(transport=httpx.MockTransport(provider_api)),
    ) as pay:
        outcome = await pay.pay("0xRecipient", Decimal("0.1"), "USDC", "Base")

    assert outcome.kind == OutcomeKind.REJECTED
    assert provider_api.calls == []


@pytest.mark.asyncio
async def test_recurring_lifecycle(pay, account) -> None:
    payment_id = await pay.add_recurring_payment(
        recipient="0xRecipient", amount="0.1", token="USDC", chain="Base", frequency="weekly"
    )

    payment = pay.get_recurring_payment(payment_id)
    assert payment.amount == ONE_NEAR // 10
    assert [p.id for p in pay.list_recurring_payments()] == [payment_id]

    outcome = await pay.execute_now(payment_id)

    assert outcome.kind == OutcomeKind.COMPLETED
    assert len(pay.get_history(payment_id)) == 1
    assert pay.get_status()[0]["last_outcome"] == "completed"

    await pay.update_frequency(payment_id, "monthly")
    cancelled = await pay.cancel_recurring_payment(payment_id)
    assert not cancelled.active
    assert pay.list_recurring_payments(active_only=True) == []

    with pytest.raises(PaymentNotFoundError):
        pay.get_recurring_payment("missing")


@pytest.mark.asyncio
async def test_integer_amounts_are_smallest_units(pay) -> None:
    payment_id = await pay.add_recurring_payment(
        recipient="0xRecipient", amount=12345, token="USDC", chain="Base", frequency="5min"
    )

    assert pay.get_recurring_payment(payment_id).amount == 12345


@pytest.mark.asyncio
async def test_human_amount_with_too_many_decimals(pay) -> None:
    with pytest.raises(ValueError):
        await pay.add_recurring_payment(
            recipient="0xRecipient",
            amount="0.1234567",
            token="USDC",
            chain="Base",
            frequency="5min",
            origin_asset="nep141:usdt.tether-token.near",
        )


@pytest.mark.asyncio
async def test_balance_includes_native_for_wrapped_origin(pay) -> None:
    assert await pay.get_balance() == 6 * ONE_NEAR
    assert await pay.get_balance("nep141:usdt.tether-token.near") == 0


@pytest.mark.asyncio
async def test_supported_tokens(pay) -> None:
    tokens = await pay.supported_tokens()

    assert tokens == [{"assetId": NEAR, "symbol": "wNEAR"}]


@pytest.mark.asyncio
async def test_restore_from_shared_storage(pay, account, client_config, storage) -> None:
    payment_id = await pay.add_recurring_payment(
        recipient="0xRecipient", amount="0.1", token="USDC", chain="Base", frequency="weekly"
    )

    async with IntentPay(
        account,
        config=client_config,
        storage=storage,
        provider=OneClickClient(transport=httpx.MockTransport(FakeProvider())),
    ) as restarted:
        assert await restarted.restore() == 1
        assert restarted.get_recurring_payment(payment_id).amount == ONE_NEAR // 10


@pytest.mark.asyncio
async def test_automation_start_stop(pay) -> None:
    await pay.start_automation()
    assert pay.automation_running

    await pay.stop_automation()
    assert not pay.automation_running
