"""IntentPay - main entry point for recurring cross-chain payments."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import timedelta
from decimal import Decimal
from typing import Any

from intentpay.assets.registry import AssetRegistry, default_registry
from intentpay.core.config import Config
from intentpay.core.logging import configure_logging, get_logger
from intentpay.core.types import (
    ExecutionOutcome,
    ExecutionRecord,
    Frequency,
    PaymentRequest,
    RecipientScope,
    RecurringPayment,
)
from intentpay.execution.executor import TransferExecutor
from intentpay.execution.lock import AccountLock
from intentpay.negotiation.negotiator import QuoteNegotiator
from intentpay.negotiation.variants import ParamOverride
from intentpay.payment.orchestrator import PaymentOrchestrator
from intentpay.provider.client import OneClickClient
from intentpay.scheduler.driver import SchedulerDriver
from intentpay.scheduler.scheduler import RecurringScheduler
from intentpay.storage import StorageBackend, get_storage
from intentpay.wallet.account import Account
from intentpay.wallet.balance import BalanceGuard

AmountType = int | Decimal | str


class IntentPay:
    """
    Main client for intentpay.

    Wires the asset registry, provider client, balance guard, negotiator,
    executor, orchestrator and scheduler for one account.

    Example:
        >>> async with IntentPay(account) as pay:
        ...     payment_id = await pay.add_recurring_payment(
        ...         recipient="0x...", amount="0.1", token="USDC", chain="Base",
        ...         frequency="weekly",
        ...     )
        ...     await pay.start_automation()
    """

    def __init__(
        self,
        account: Account,
        config: Config | None = None,
        registry: AssetRegistry | None = None,
        storage: StorageBackend | None = None,
        provider: OneClickClient | None = None,
        variants: Sequence[ParamOverride] | None = None,
        log_level: int | str | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            account: Signing account that pays (its id is also the refund recipient)
            config: Configuration (default: ``Config.from_env`` with the account's id)
            registry: Asset table (default: the built-in table)
            storage: Storage backend (default: selected by ``config.storage_backend``)
            provider: 1Click client (default: built from config)
            variants: Quote variants to try, in order
            log_level: Overrides ``config.log_level``
        """
        self._config = config or Config.from_env(account_id=account.account_id)

        configure_logging(
            level=log_level or self._config.log_level, json_format=self._config.log_json
        )
        self._logger = get_logger("client")
        self._logger.info(
            f"Initializing intentpay for {account.account_id} "
            f"(env: {self._config.env}, api token: {self._config.masked_api_token()})"
        )

        self._account = account
        self._registry = registry or default_registry()

        if storage is None:
            storage_kwargs: dict[str, Any] = {}
            if self._config.storage_backend == "redis" and self._config.redis_url:
                storage_kwargs["redis_url"] = self._config.redis_url
            storage = get_storage(self._config.storage_backend, **storage_kwargs)
        self._storage = storage

        self._provider = provider or OneClickClient(
            base_url=self._config.api_base_url,
            api_token=self._config.api_token,
            timeout=self._config.request_timeout,
        )
        self._balance_guard = BalanceGuard(self._registry)
        self._negotiator = QuoteNegotiator(
            self._provider,
            self._registry,
            deadline_window=timedelta(seconds=self._config.quote_deadline_seconds),
        )
        self._executor = TransferExecutor(
            self._provider,
            AccountLock(self._storage),
            status_poll_interval=self._config.status_poll_interval,
            settlement_timeout=self._config.settlement_timeout,
            lock_ttl=self._config.lock_ttl,
        )
        self._orchestrator = PaymentOrchestrator(
            self._config,
            self._registry,
            self._balance_guard,
            self._negotiator,
            self._executor,
            variants=variants,
        )
        self._scheduler = RecurringScheduler(
            self._orchestrator,
            self._account,
            self._registry,
            origin_asset=self._config.origin_asset,
            storage=self._storage,
        )
        self._driver = SchedulerDriver(
            self._scheduler, check_interval=self._config.scheduler_check_interval
        )

    @property
    def config(self) -> Config:
        return self._config

    @property
    def account(self) -> Account:
        return self._account

    @property
    def registry(self) -> AssetRegistry:
        return self._registry

    @property
    def scheduler(self) -> RecurringScheduler:
        return self._scheduler

    @property
    def orchestrator(self) -> PaymentOrchestrator:
        return self._orchestrator

    @property
    def automation_running(self) -> bool:
        return self._driver.running

    async def __aenter__(self) -> IntentPay:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit: stop automation and close clients."""
        await self.close()

    async def close(self) -> None:
        await self._driver.stop()
        await self._provider.close()
        await self._storage.close()

    def _to_units(self, amount: AmountType, origin_asset: str | None) -> int:
        """Integers are smallest units; Decimal/str are human amounts of the origin asset."""
        if isinstance(amount, int):
            return amount
        origin = self._registry.lookup(origin_asset or self._config.origin_asset)
        return origin.to_units(amount)

    async def add_recurring_payment(
        self,
        recipient: str,
        amount: AmountType,
        token: str,
        chain: str,
        frequency: Frequency | str,
        origin_asset: str | None = None,
        recipient_scope: RecipientScope = RecipientScope.EXTERNAL_CHAIN,
        anchor_day: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """
        Register a recurring payment.

        Args:
            recipient: Destination address
            amount: Smallest units (int) or a human amount ("0.1") of the origin asset
            token: Destination token symbol
            chain: Destination chain
            frequency: "5min", "weekly" or "monthly"
            origin_asset: Asset to pay from (default: config.origin_asset)
            recipient_scope: Deliver on the destination chain or within the provider
            anchor_day: Day of month for monthly payments
            metadata: Free-form data kept with the record

        Returns:
            The payment id
        """
        return await self._scheduler.add(
            recipient=recipient,
            amount=self._to_units(amount, origin_asset),
            token=token,
            chain=chain,
            frequency=frequency,
            origin_asset=origin_asset,
            recipient_scope=recipient_scope,
            anchor_day=anchor_day,
            metadata=metadata,
        )

    async def cancel_recurring_payment(self, payment_id: str) -> RecurringPayment:
        return await self._scheduler.cancel(payment_id)

    async def update_frequency(
        self, payment_id: str, frequency: Frequency | str
    ) -> RecurringPayment:
        return await self._scheduler.update_frequency(payment_id, frequency)

    def list_recurring_payments(self, active_only: bool = False) -> list[RecurringPayment]:
        return self._scheduler.list(active_only=active_only)

    def get_recurring_payment(self, payment_id: str) -> RecurringPayment:
        return self._scheduler.get(payment_id)

    def get_history(self, payment_id: str) -> list[ExecutionRecord]:
        return self._scheduler.history(payment_id)

    def get_status(self) -> list[dict[str, Any]]:
        """Summary row per recurring payment."""
        return self._scheduler.status()

    async def execute_now(self, payment_id: str) -> ExecutionOutcome | None:
        """Run a recurring payment immediately. None if it is already running."""
        return await self._scheduler.execute_now(payment_id)

    async def pay(
        self,
        recipient: str,
        amount: AmountType,
        token: str,
        chain: str,
        origin_asset: str | None = None,
        recipient_scope: RecipientScope = RecipientScope.EXTERNAL_CHAIN,
    ) -> ExecutionOutcome:
        """
        Execute a one-off payment outside the schedule.

        Raises:
            BalanceQueryError: If the account balance could not be read
        """
        request = PaymentRequest(
            recipient=recipient,
            amount=self._to_units(amount, origin_asset),
            token=token,
            chain=chain,
            origin_asset=origin_asset,
            recipient_scope=recipient_scope,
        )
        return await self._orchestrator.run(self._account, request)

    async def get_balance(self, asset_id: str | None = None) -> int:
        """Spendable balance of ``asset_id`` (default: the origin asset), in smallest units."""
        return await self._balance_guard.spendable_balance(
            self._account, asset_id or self._config.origin_asset
        )

    async def supported_tokens(self) -> list[dict[str, Any]]:
        """Assets the provider currently supports."""
        return await self._provider.list_tokens()

    async def restore(self) -> int:
        """Reload recurring payments mirrored in storage."""
        return await self._scheduler.restore()

    async def start_automation(self) -> None:
        await self._driver.start()

    async def stop_automation(self) -> None:
        await self._driver.stop()
