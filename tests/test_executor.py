"""Tests for TransferExecutor submission and settlement polling."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from intentpay.assets.registry import COMMON_ASSETS
from intentpay.core.exceptions import ProviderError, QuoteExpiredError, SubmissionFailed
from intentpay.core.types import OutcomeKind, SettlementState, SettlementStatus
from intentpay.execution.executor import TransferExecutor
from intentpay.execution.lock import AccountLock
from intentpay.storage.memory import InMemoryStorage

NEAR = COMMON_ASSETS["NEAR"]


def status(state: SettlementState, settled: int | None = None) -> SettlementStatus:
    return SettlementStatus(state=state, settled_amount=settled)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def client():
    client = AsyncMock()
    client.submit_deposit_tx.return_value = {}
    return client


@pytest.fixture
def executor(client, storage, clock, timer):
    return TransferExecutor(
        client,
        AccountLock(storage),
        status_poll_interval=5.0,
        settlement_timeout=60.0,
        lock_retries=0,
        clock=clock,
        monotonic=timer.monotonic,
        sleep=timer.sleep,
    )


class TestSubmission:
    @pytest.mark.asyncio
    async def test_transfers_quoted_amount_to_deposit_address(
        self, executor, client, account, make_quote
    ) -> None:
        client.get_status.return_value = status(SettlementState.SUCCESS, 249_000)
        quote = make_quote(amount_in=10**23)

        outcome = await executor.execute(account, quote, NEAR)

        assert outcome.kind == OutcomeKind.COMPLETED
        assert len(account.transfers) == 1
        transfer = account.transfers[0]
        assert transfer.target == "0xdeposit"
        assert transfer.asset_id == NEAR
        assert transfer.amount == 10**23
        client.submit_deposit_tx.assert_awaited_once_with(transfer.tx_hash, "0xdeposit")

    @pytest.mark.asyncio
    async def test_expired_quote_never_submitted(
        self, executor, client, account, make_quote, clock
    ) -> None:
        quote = make_quote(expires_in=timedelta(minutes=1))
        clock.advance(minutes=1)

        with pytest.raises(QuoteExpiredError) as exc_info:
            await executor.execute(account, quote, NEAR)

        assert exc_info.value.quote_id == "0xdeposit"
        assert account.transfers == []
        client.get_status.assert_not_awaited()
        client.submit_deposit_tx.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_account_error_raises_submission_failed(
        self, executor, client, make_quote
    ) -> None:
        account = AsyncMock()
        account.account_id = "alice.near"
        account.submit_transfer.side_effect = RuntimeError("gas exhausted")

        with pytest.raises(SubmissionFailed) as exc_info:
            await executor.execute(account, make_quote(), NEAR)

        assert exc_info.value.deposit_address == "0xdeposit"
        assert isinstance(exc_info.value.cause, RuntimeError)
        client.get_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lock_released_after_failed_submission(
        self, executor, storage, make_quote
    ) -> None:
        account = AsyncMock()
        account.account_id = "alice.near"
        account.submit_transfer.side_effect = RuntimeError("rejected")

        with pytest.raises(SubmissionFailed):
            await executor.execute(account, make_quote(), NEAR)

        assert await AccountLock(storage).acquire("alice.near", retry_count=0) is not None

    @pytest.mark.asyncio
    async def test_busy_account_raises_submission_failed(
        self, executor, storage, account, make_quote
    ) -> None:
        held = await AccountLock(storage).acquire("alice.near")
        assert held is not None

        with pytest.raises(SubmissionFailed, match="busy"):
            await executor.execute(account, make_quote(), NEAR)

        assert account.transfers == []

    @pytest.mark.asyncio
    async def test_deposit_report_failure_is_not_fatal(
        self, executor, client, account, make_quote
    ) -> None:
        client.submit_deposit_tx.side_effect = ProviderError("down", status_code=500)
        client.get_status.return_value = status(SettlementState.SUCCESS, 1)

        outcome = await executor.execute(account, make_quote(), NEAR)

        assert outcome.kind == OutcomeKind.COMPLETED


class TestSettlement:
    @pytest.mark.asyncio
    async def test_polls_until_success(
        self, executor, client, account, make_quote, timer
    ) -> None:
        client.get_status.side_effect = [
            status(SettlementState.PENDING_DEPOSIT),
            status(SettlementState.PROCESSING),
            status(SettlementState.SUCCESS, 249_000),
        ]

        outcome = await executor.execute(account, make_quote(), NEAR)

        assert outcome.kind == OutcomeKind.COMPLETED
        assert outcome.settled_amount == 249_000
        assert outcome.tx_hash == account.transfers[0].tx_hash
        assert outcome.deposit_address == "0xdeposit"
        assert timer.sleeps == [5.0, 5.0]

    @pytest.mark.asyncio
    async def test_success_without_amount_uses_quoted_output(
        self, executor, client, account, make_quote
    ) -> None:
        client.get_status.return_value = status(SettlementState.SUCCESS)

        outcome = await executor.execute(account, make_quote(amount_out=123), NEAR)

        assert outcome.settled_amount == 123

    @pytest.mark.asyncio
    @pytest.mark.parametrize("state", [SettlementState.REFUNDED, SettlementState.FAILED])
    async def test_terminal_failure_states(
        self, executor, client, account, make_quote, state
    ) -> None:
        client.get_status.return_value = status(state)

        outcome = await executor.execute(account, make_quote(), NEAR)

        assert outcome.kind == OutcomeKind.FAILED
        assert outcome.cause == f"settlement {state.value.lower()}"

    @pytest.mark.asyncio
    async def test_times_out_when_never_terminal(
        self, executor, client, account, make_quote, timer
    ) -> None:
        client.get_status.return_value = status(SettlementState.PROCESSING)

        outcome = await executor.execute(account, make_quote(), NEAR)

        assert outcome.kind == OutcomeKind.TIMED_OUT
        assert outcome.details["last_state"] == "PROCESSING"
        assert timer.now == pytest.approx(60.0)
        assert sum(timer.sleeps) == pytest.approx(60.0)

    @pytest.mark.asyncio
    async def test_last_sleep_bounded_by_remaining_time(
        self, client, storage, account, make_quote, clock, timer
    ) -> None:
        executor = TransferExecutor(
            client,
            AccountLock(storage),
            status_poll_interval=7.0,
            settlement_timeout=10.0,
            clock=clock,
            monotonic=timer.monotonic,
            sleep=timer.sleep,
        )
        client.get_status.return_value = status(SettlementState.PROCESSING)

        outcome = await executor.execute(account, make_quote(), NEAR)

        assert outcome.kind == OutcomeKind.TIMED_OUT
        assert timer.sleeps == [7.0, 3.0]

    @pytest.mark.asyncio
    async def test_poll_errors_do_not_stop_polling(
        self, executor, client, account, make_quote
    ) -> None:
        client.get_status.side_effect = [
            ProviderError("timeout"),
            ProviderError("busy", status_code=503),
            status(SettlementState.SUCCESS, 10),
        ]

        outcome = await executor.execute(account, make_quote(), NEAR)

        assert outcome.kind == OutcomeKind.COMPLETED
        assert client.get_status.await_count == 3
