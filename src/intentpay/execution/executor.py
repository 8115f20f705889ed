"""
TransferExecutor - submits a quoted transfer and polls it to settlement.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from datetime import datetime

from intentpay.core.exceptions import (
    AccountBusyError,
    ProviderError,
    QuoteExpiredError,
    SubmissionFailed,
)
from intentpay.core.logging import get_logger
from intentpay.core.types import (
    ExecutionOutcome,
    Quote,
    SettlementState,
    SettlementStatus,
    utc_now,
)
from intentpay.execution.lock import AccountLock, HeldLock
from intentpay.provider.client import OneClickClient
from intentpay.wallet.account import Account


class TransferExecutor:
    """
    Executes an accepted quote.

    Flow:
    1. Refuse expired quotes before touching the account or the network
    2. Transfer the quoted input amount to the deposit address while
       holding the account's transaction lock
    3. Report the tx hash to the provider (best effort)
    4. Poll the status endpoint until a terminal state or the settlement
       timeout

    Polling never raises: a timeout yields ``TIMED_OUT``, which means the
    transfer may still settle and needs reconciliation.
    """

    def __init__(
        self,
        client: OneClickClient,
        lock: AccountLock,
        status_poll_interval: float = 5.0,
        settlement_timeout: float = 900.0,
        lock_ttl: int = 60,
        lock_retries: int = 3,
        clock: Callable[[], datetime] = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._lock = lock
        self._poll_interval = status_poll_interval
        self._settlement_timeout = settlement_timeout
        self._lock_ttl = lock_ttl
        self._lock_retries = lock_retries
        self._clock = clock
        self._monotonic = monotonic
        self._sleep = sleep
        self._logger = get_logger("executor")

    async def execute(self, account: Account, quote: Quote, origin_asset: str) -> ExecutionOutcome:
        """
        Submit ``quote`` from ``account`` and wait for settlement.

        Args:
            account: Paying account
            quote: Accepted quote (its deposit address is the transfer target)
            origin_asset: Asset the account pays with

        Returns:
            COMPLETED, FAILED or TIMED_OUT outcome

        Raises:
            QuoteExpiredError: If the quote expired before submission
            SubmissionFailed: If the transfer was not accepted or the
                account lock could not be acquired
        """
        self._ensure_fresh(quote)
        tx_hash = await self.submit(account, quote, origin_asset)
        await self._report_deposit(tx_hash, quote.deposit_address)
        return await self.await_settlement(quote, tx_hash)

    def _ensure_fresh(self, quote: Quote) -> None:
        if quote.is_expired(self._clock()):
            raise QuoteExpiredError(quote.provider_quote_id, quote.expiry)

    def hold_account(self, account: Account) -> HeldLock:
        """
        The account's transaction lock as an ``async with`` block.

        Every chain transaction sent from the account goes through it:
        transfers here, wrapped-native deposits in the orchestrator.

        Raises:
            AccountBusyError: On entry, if the lock stayed held elsewhere
        """
        return self._lock.hold(
            account.account_id, ttl=self._lock_ttl, retry_count=self._lock_retries
        )

    async def submit(self, account: Account, quote: Quote, origin_asset: str) -> str:
        """Transfer the quoted input amount to the deposit address. Returns the tx hash."""
        try:
            async with self.hold_account(account):
                # Waiting for the lock may have outlived the quote
                self._ensure_fresh(quote)
                self._logger.info(
                    f"Submitting {quote.quoted_input_amount} {origin_asset} "
                    f"to {quote.deposit_address}"
                )
                try:
                    tx_hash = await account.submit_transfer(
                        quote.deposit_address, origin_asset, quote.quoted_input_amount
                    )
                except Exception as e:
                    raise SubmissionFailed(
                        f"Transfer to {quote.deposit_address} failed: {e}",
                        deposit_address=quote.deposit_address,
                        cause=e,
                    ) from e
        except AccountBusyError as e:
            raise SubmissionFailed(
                str(e), deposit_address=quote.deposit_address, cause=e
            ) from e

        self._logger.info(f"Transfer submitted: {tx_hash}")
        return tx_hash

    async def _report_deposit(self, tx_hash: str, deposit_address: str) -> None:
        try:
            await self._client.submit_deposit_tx(tx_hash, deposit_address)
        except ProviderError as e:
            # Settlement still proceeds; the provider just detects the deposit later
            self._logger.warning(f"Could not report deposit tx {tx_hash}: {e}")

    async def await_settlement(self, quote: Quote, tx_hash: str | None = None) -> ExecutionOutcome:
        """
        Poll the status endpoint until a terminal state or timeout.

        Returns:
            COMPLETED, FAILED or TIMED_OUT outcome
        """
        deadline = self._monotonic() + self._settlement_timeout
        deposit_address = quote.deposit_address
        last_state = SettlementState.UNKNOWN
        polls = 0

        while True:
            polls += 1
            try:
                status = await self._client.get_status(deposit_address)
            except ProviderError as e:
                self._logger.warning(f"Status poll {polls} for {deposit_address} failed: {e}")
            else:
                if status.state != last_state:
                    self._logger.info(f"Settlement {deposit_address}: {status.state.value}")
                    last_state = status.state
                if status.state.is_terminal():
                    return self._outcome_for(status, quote, tx_hash)

            remaining = deadline - self._monotonic()
            if remaining <= 0:
                self._logger.warning(
                    f"Settlement of {deposit_address} not final after "
                    f"{self._settlement_timeout}s (last state {last_state.value})"
                )
                return ExecutionOutcome.timed_out(
                    tx_hash=tx_hash,
                    deposit_address=deposit_address,
                    details={"last_state": last_state.value, "polls": polls},
                )
            await self._sleep(min(self._poll_interval, remaining))

    def _outcome_for(
        self, status: SettlementStatus, quote: Quote, tx_hash: str | None
    ) -> ExecutionOutcome:
        details = {"destination_tx_hashes": status.destination_tx_hashes}
        if status.state.is_successful():
            settled = (
                status.settled_amount
                if status.settled_amount is not None
                else quote.quoted_output_amount
            )
            return ExecutionOutcome.completed(
                settled,
                tx_hash=tx_hash,
                deposit_address=quote.deposit_address,
                details=details,
            )
        return ExecutionOutcome.failed(
            f"settlement {status.state.value.lower()}",
            tx_hash=tx_hash,
            deposit_address=quote.deposit_address,
            details=details,
        )
