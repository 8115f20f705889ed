"""
RecurringScheduler - decides when each recurring payment is due and runs it.

Records live in memory. When a storage backend is given, every change is
mirrored to it so ``restore()`` can rebuild the schedule after a restart.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from intentpay.assets.registry import AssetRegistry
from intentpay.core.exceptions import PaymentNotFoundError, ValidationError
from intentpay.core.logging import get_logger
from intentpay.core.types import (
    ExecutionOutcome,
    ExecutionRecord,
    Frequency,
    RecipientScope,
    RecurringPayment,
    utc_now,
)
from intentpay.payment.orchestrator import PaymentOrchestrator
from intentpay.scheduler.frequency import next_due
from intentpay.wallet.account import Account

if TYPE_CHECKING:
    from intentpay.storage.base import StorageBackend


class RecurringScheduler:
    """
    Owns the recurring payments of one account.

    Executions are serialized through a single lane, and a record whose
    previous run is still in flight is skipped, as is one cancelled while
    waiting for the lane. After every run, whatever its outcome,
    ``next_due_at`` is re-armed to one interval after the run started, so a
    failing payment is retried on its normal cadence and never twice
    within one interval.

    Example:
        >>> scheduler = RecurringScheduler(orchestrator, account, registry, "nep141:wrap.near")
        >>> payment_id = await scheduler.add("0xabc...", 1_000_000, "USDC", "Base", "weekly")
        >>> outcomes = await scheduler.tick()
    """

    PAYMENTS_COLLECTION = "recurring_payments"
    EXECUTIONS_COLLECTION = "executions"

    def __init__(
        self,
        orchestrator: PaymentOrchestrator,
        account: Account,
        registry: AssetRegistry,
        origin_asset: str,
        storage: StorageBackend | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._orchestrator = orchestrator
        self._account = account
        self._registry = registry
        self._origin_asset = origin_asset
        self._storage = storage
        self._clock = clock
        self._payments: dict[str, RecurringPayment] = {}
        self._history: dict[str, list[ExecutionRecord]] = {}
        self._in_flight: set[str] = set()
        self._lane = asyncio.Lock()
        self._logger = get_logger("scheduler")

    async def add(
        self,
        recipient: str,
        amount: int,
        token: str,
        chain: str,
        frequency: Frequency | str,
        origin_asset: str | None = None,
        recipient_scope: RecipientScope = RecipientScope.EXTERNAL_CHAIN,
        anchor_day: int | None = None,
        metadata: dict[str, Any] | None = None,
        payment_id: str | None = None,
    ) -> str:
        """
        Register a recurring payment.

        The asset pair is resolved here so a bad token/chain fails now
        rather than at the first execution.

        Args:
            recipient: Destination address
            amount: Amount per run, in the origin asset's smallest unit
            token: Destination token symbol (e.g. "USDC")
            chain: Destination chain (e.g. "Base")
            frequency: Frequency or its string form ("5min", "weekly", "monthly")
            origin_asset: Asset to pay from (defaults to the scheduler's)
            recipient_scope: Deliver on the destination chain or within the provider
            anchor_day: Day of month for monthly payments (defaults to today)
            metadata: Free-form data kept with the record
            payment_id: Explicit id (generated when omitted)

        Returns:
            The payment id

        Raises:
            ValidationError: If an argument is invalid or the id is taken
            AssetNotFoundError: If token/chain or the origin asset is unknown
        """
        if amount <= 0:
            raise ValidationError("Amount must be positive", details={"amount": amount})
        if not recipient:
            raise ValidationError("Recipient is required")
        frequency = _parse_frequency(frequency)
        if anchor_day is not None and not 1 <= anchor_day <= 31:
            raise ValidationError("anchor_day must be between 1 and 31")

        destination_asset = self._registry.resolve(token, chain)
        origin = self._registry.lookup(origin_asset or self._origin_asset)

        payment_id = payment_id or str(uuid.uuid4())
        if payment_id in self._payments:
            raise ValidationError(f"Recurring payment already exists: {payment_id}")

        now = self._clock()
        if frequency == Frequency.MONTHLY and anchor_day is None:
            anchor_day = now.day

        payment = RecurringPayment(
            id=payment_id,
            recipient=recipient,
            amount=amount,
            token=token,
            chain=chain,
            origin_asset=origin.asset_id,
            destination_asset=destination_asset,
            frequency=frequency,
            next_due_at=next_due(frequency, now, anchor_day),
            created_at=now,
            recipient_scope=recipient_scope,
            anchor_day=anchor_day,
            metadata=metadata or {},
        )
        self._payments[payment_id] = payment
        await self._persist(payment)

        self._logger.info(
            f"Recurring payment {payment_id} added: {amount} {token} on {chain} "
            f"to {recipient}, {frequency.value}, first due {payment.next_due_at.isoformat()}"
        )
        return payment_id

    async def cancel(self, payment_id: str) -> RecurringPayment:
        """
        Deactivate a recurring payment. Cancelling twice is a no-op.

        A run already in flight finishes and its outcome is still recorded.

        Raises:
            PaymentNotFoundError: If the id is unknown
        """
        payment = self.get(payment_id)
        if payment.active:
            payment.active = False
            await self._persist(payment)
            self._logger.info(f"Recurring payment {payment_id} cancelled")
        return payment

    async def update_frequency(
        self, payment_id: str, frequency: Frequency | str
    ) -> RecurringPayment:
        """Change a payment's frequency and re-arm it from now."""
        payment = self.get(payment_id)
        frequency = _parse_frequency(frequency)

        now = self._clock()
        if frequency == Frequency.MONTHLY and payment.anchor_day is None:
            payment.anchor_day = now.day
        payment.frequency = frequency
        payment.next_due_at = next_due(frequency, now, payment.anchor_day)
        await self._persist(payment)
        self._logger.info(
            f"Recurring payment {payment_id} now {frequency.value}, "
            f"next due {payment.next_due_at.isoformat()}"
        )
        return payment

    def get(self, payment_id: str) -> RecurringPayment:
        """
        Get a recurring payment by id.

        Raises:
            PaymentNotFoundError: If the id is unknown
        """
        payment = self._payments.get(payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)
        return payment

    def list(self, active_only: bool = False) -> list[RecurringPayment]:
        """All recurring payments in creation order."""
        payments = list(self._payments.values())
        if active_only:
            payments = [p for p in payments if p.active]
        return payments

    def history(self, payment_id: str) -> list[ExecutionRecord]:
        """Execution records of a payment, oldest first."""
        self.get(payment_id)
        return list(self._history.get(payment_id, []))

    def status(self) -> list[dict[str, Any]]:
        """One summary row per payment, for dashboards and CLIs."""
        rows = []
        for payment in self._payments.values():
            last = payment.last_outcome
            rows.append(
                {
                    "id": payment.id,
                    "active": payment.active,
                    "frequency": payment.frequency.value,
                    "amount": payment.amount,
                    "token": payment.token,
                    "chain": payment.chain,
                    "recipient": payment.recipient,
                    "next_due_at": payment.next_due_at.isoformat(),
                    "last_run_at": payment.last_run_at.isoformat() if payment.last_run_at else None,
                    "last_outcome": last.kind.value if last else None,
                    "run_count": payment.run_count,
                    "in_flight": payment.id in self._in_flight,
                }
            )
        return rows

    async def tick(self, now: datetime | None = None) -> dict[str, ExecutionOutcome]:
        """
        Run every active payment that is due and not already in flight.

        One payment's failure never prevents the others from running.

        Returns:
            Outcome per executed payment id
        """
        now = now or self._clock()
        due = [
            p for p in self._payments.values() if p.is_due(now) and p.id not in self._in_flight
        ]
        if due:
            self._logger.info(f"{len(due)} recurring payment(s) due")

        outcomes: dict[str, ExecutionOutcome] = {}
        for payment in due:
            outcome = await self._execute(payment, now, trigger="schedule")
            if outcome is not None:
                outcomes[payment.id] = outcome
        return outcomes

    async def execute_now(self, payment_id: str) -> ExecutionOutcome | None:
        """
        Run a payment immediately, with the same bookkeeping as a scheduled run.

        Returns:
            The outcome, or None if the payment was already in flight or
            was cancelled while waiting for the lane

        Raises:
            PaymentNotFoundError: If the id is unknown
            ValidationError: If the payment is cancelled
        """
        payment = self.get(payment_id)
        if not payment.active:
            raise ValidationError(f"Recurring payment {payment_id} is cancelled")
        return await self._execute(payment, self._clock(), trigger="manual")

    async def _execute(
        self, payment: RecurringPayment, now: datetime, trigger: str
    ) -> ExecutionOutcome | None:
        if payment.id in self._in_flight:
            self._logger.info(f"Recurring payment {payment.id} already in flight, skipping")
            return None

        self._in_flight.add(payment.id)
        try:
            async with self._lane:
                # The record may have changed while waiting for the lane
                if not payment.active:
                    self._logger.info(f"Recurring payment {payment.id} cancelled, skipping")
                    return None
                if trigger == "schedule" and not payment.is_due(now):
                    self._logger.info(f"Recurring payment {payment.id} no longer due, skipping")
                    return None

                started_at = self._clock()
                self._logger.info(f"Executing recurring payment {payment.id} ({trigger})")
                try:
                    outcome = await self._orchestrator.run(
                        self._account, payment.to_payment_request()
                    )
                except Exception as e:
                    self._logger.exception(f"Recurring payment {payment.id} raised: {e}")
                    outcome = ExecutionOutcome.failed(f"{type(e).__name__}: {e}")

                payment.last_outcome = outcome
                payment.last_run_at = started_at
                payment.run_count += 1
                # Earlier runs in the same tick may have delayed this one
                payment.next_due_at = next_due(
                    payment.frequency, max(now, started_at), payment.anchor_day
                )

                record = ExecutionRecord(
                    payment_id=payment.id,
                    outcome=outcome,
                    started_at=started_at,
                    trigger=trigger,
                )
                self._history.setdefault(payment.id, []).append(record)
                await self._persist(payment, record)

                self._logger.info(
                    f"Recurring payment {payment.id}: {outcome.kind.value}, "
                    f"next due {payment.next_due_at.isoformat()}"
                )
                return outcome
        finally:
            self._in_flight.discard(payment.id)

    async def _persist(
        self, payment: RecurringPayment, record: ExecutionRecord | None = None
    ) -> None:
        if self._storage is None:
            return
        try:
            await self._storage.save(self.PAYMENTS_COLLECTION, payment.id, payment.to_dict())
            if record is not None:
                await self._storage.save(
                    self.EXECUTIONS_COLLECTION,
                    f"{payment.id}:{payment.run_count}",
                    record.to_dict(),
                )
        except Exception as e:
            # The in-memory record stays authoritative for this process
            self._logger.error(f"Could not persist recurring payment {payment.id}: {e}")

    async def restore(self) -> int:
        """
        Load payments and history from storage, replacing nothing already in memory.

        Returns:
            Number of payments restored
        """
        if self._storage is None:
            return 0

        stored = [
            RecurringPayment.from_dict(data)
            for data in await self._storage.query(self.PAYMENTS_COLLECTION)
        ]
        restored: set[str] = set()
        for payment in sorted(stored, key=lambda p: p.created_at):
            if payment.id in self._payments:
                continue
            self._payments[payment.id] = payment
            restored.add(payment.id)

        for data in await self._storage.query(self.EXECUTIONS_COLLECTION):
            data.pop("_key", None)
            record = ExecutionRecord.from_dict(data)
            if record.payment_id in restored:
                self._history.setdefault(record.payment_id, []).append(record)
        for payment_id in restored:
            self._history.get(payment_id, []).sort(key=lambda r: r.started_at)

        self._logger.info(f"Restored {len(restored)} recurring payment(s) from storage")
        return len(restored)


def _parse_frequency(frequency: Frequency | str) -> Frequency:
    if isinstance(frequency, Frequency):
        return frequency
    try:
        return Frequency.from_string(frequency)
    except ValueError as e:
        raise ValidationError(str(e)) from e
