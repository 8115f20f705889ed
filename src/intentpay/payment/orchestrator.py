"""
PaymentOrchestrator - runs one payment end to end.

Sequence:
1. Resolve the destination and origin assets
2. Balance check (short balance rejects before any quote is requested)
3. Top up the wrapped native deposit when paying in the native coin,
   holding the account's transaction lock
4. Negotiate a quote across the configured variants
5. Submit the transfer and wait for settlement
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

from intentpay.assets.registry import AssetRegistry
from intentpay.core.config import Config
from intentpay.core.exceptions import (
    AccountBusyError,
    AssetNotFoundError,
    BalanceQueryError,
    DepositError,
    NegotiationExhausted,
    QuoteExpiredError,
    SubmissionFailed,
)
from intentpay.core.logging import get_logger
from intentpay.core.types import (
    AssetInfo,
    ExecutionOutcome,
    PaymentRequest,
    TransferIntent,
    utc_now,
)
from intentpay.execution.executor import TransferExecutor
from intentpay.negotiation.negotiator import QuoteNegotiator
from intentpay.negotiation.variants import (
    DEFAULT_VARIANTS,
    AssetEncoding,
    ParamOverride,
    prioritize,
)
from intentpay.wallet.account import Account
from intentpay.wallet.balance import BalanceGuard


class PaymentOrchestrator:
    """
    Composes balance guard, negotiator and executor into one payment run.

    ``run`` returns exactly one ExecutionOutcome per call and never retries
    internally; the scheduler decides when to try again. The only error
    that escapes is BalanceQueryError, since a failed read says nothing
    about whether the payment could have run.
    """

    def __init__(
        self,
        config: Config,
        registry: AssetRegistry,
        balance_guard: BalanceGuard,
        negotiator: QuoteNegotiator,
        executor: TransferExecutor,
        variants: Sequence[ParamOverride] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._config = config
        self._registry = registry
        self._balance_guard = balance_guard
        self._negotiator = negotiator
        self._executor = executor
        self._variants = tuple(variants) if variants is not None else DEFAULT_VARIANTS
        self._clock = clock
        self._logger = get_logger("orchestrator")

    async def run(self, account: Account, request: PaymentRequest) -> ExecutionOutcome:
        """
        Execute one payment.

        Args:
            account: Paying account
            request: What to pay, to whom

        Returns:
            COMPLETED, REJECTED, TIMED_OUT or FAILED outcome

        Raises:
            BalanceQueryError: If the account balance could not be read
        """
        label = request.payment_id or "one-off"

        # 1. Assets
        origin_asset = request.origin_asset or self._config.origin_asset
        try:
            destination = self._registry.lookup(
                self._registry.resolve(request.token, request.chain)
            )
            origin = self._registry.lookup(origin_asset)
        except AssetNotFoundError as e:
            self._logger.warning(f"[{label}] {e}")
            return ExecutionOutcome.rejected("unsupported asset", details={"error": str(e)})

        # 2. Balance
        required = max(request.amount, self._config.min_required_balance)
        check = await self._balance_guard.check_sufficient(account, origin.asset_id, required)
        if not check.sufficient:
            return ExecutionOutcome.rejected(
                "insufficient balance",
                details={"available": str(check.available), "required": str(check.required)},
            )

        # 3. Native deposit
        if origin.wraps_native:
            failure = await self._deposit(account, origin, request.amount, label)
            if failure is not None:
                return failure

        # 4. Quote
        intent = TransferIntent(
            origin_asset=origin.asset_id,
            destination_asset=destination.asset_id,
            amount=request.amount,
            recipient=request.recipient,
            recipient_scope=request.recipient_scope,
            refund_recipient=account.account_id,
            deadline=self._clock() + timedelta(seconds=self._config.quote_deadline_seconds),
            max_slippage_bps=self._config.max_slippage_bps,
        )
        self._logger.info(
            f"[{label}] Paying {origin.format_amount(request.amount)} as {destination.symbol} "
            f"({destination.chain}) to {request.recipient}"
        )
        try:
            quote = await self._negotiator.negotiate(intent, self.variants_for(destination))
        except NegotiationExhausted as e:
            self._logger.error(f"[{label}] {e}")
            return ExecutionOutcome.failed("quote negotiation exhausted", details=e.details)

        # An exact-output quote may ask for more input than was deposited
        if origin.wraps_native and quote.quoted_input_amount > request.amount:
            failure = await self._deposit(account, origin, quote.quoted_input_amount, label)
            if failure is not None:
                failure.deposit_address = quote.deposit_address
                return failure

        # 5. Submit and settle
        try:
            outcome = await self._executor.execute(account, quote, origin.asset_id)
        except (SubmissionFailed, QuoteExpiredError) as e:
            self._logger.error(f"[{label}] {e}")
            return ExecutionOutcome.failed(str(e), deposit_address=quote.deposit_address)

        self._logger.info(f"[{label}] Payment finished: {outcome.kind.value}")
        return outcome

    def variants_for(self, destination: AssetInfo) -> list[ParamOverride]:
        """Variants in the order to try for ``destination``'s chain."""
        preferred = self._config.asset_encoding_overrides.get(destination.chain)
        encoding = AssetEncoding.from_string(preferred) if preferred else None
        return prioritize(self._variants, encoding)

    async def _deposit(
        self, account: Account, origin: AssetInfo, amount: int, label: str
    ) -> ExecutionOutcome | None:
        """Run ``ensure_deposited`` under the account lock. Returns a FAILED outcome or None."""
        try:
            async with self._executor.hold_account(account):
                await self.ensure_deposited(account, origin, amount)
        except AccountBusyError as e:
            self._logger.error(f"[{label}] {e}")
            return ExecutionOutcome.failed(str(e))
        except DepositError as e:
            self._logger.error(f"[{label}] {e}")
            return ExecutionOutcome.failed(
                str(e),
                details={
                    "required": str(e.required_amount),
                    "deposited": str(e.deposited_amount),
                },
            )
        return None

    async def ensure_deposited(self, account: Account, asset: AssetInfo, amount: int) -> None:
        """
        Make sure at least ``amount`` of the wrapped native asset is deposited.

        Only the shortfall is deposited, so calling this again after a
        partial failure never double-deposits.

        Raises:
            DepositError: If the deposit failed or left the balance short
            BalanceQueryError: If the deposited balance could not be read
        """
        deposited = await self._deposited_balance(account, asset)
        if deposited >= amount:
            return

        shortfall = amount - deposited
        self._logger.info(
            f"Depositing {asset.format_amount(shortfall)} into {asset.asset_id} "
            f"(have {asset.format_amount(deposited)})"
        )
        try:
            tx_hash = await account.deposit_native(shortfall)
        except Exception as e:
            raise DepositError(
                f"Native deposit failed: {e}",
                required_amount=amount,
                deposited_amount=deposited,
            ) from e
        self._logger.info(f"Deposit submitted: {tx_hash}")

        deposited = await self._deposited_balance(account, asset)
        if deposited < amount:
            raise DepositError(
                f"Deposited balance still short after deposit: "
                f"{asset.format_amount(deposited)} < {asset.format_amount(amount)}",
                required_amount=amount,
                deposited_amount=deposited,
            )

    async def _deposited_balance(self, account: Account, asset: AssetInfo) -> int:
        try:
            return int(await account.query_balance(asset.asset_id))
        except Exception as e:
            raise BalanceQueryError(
                f"Balance query failed: {e}",
                account_id=account.account_id,
                asset_id=asset.asset_id,
            ) from e
