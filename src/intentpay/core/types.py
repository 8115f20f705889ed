"""
Type definitions for intentpay.

This module contains the enums, data classes, and type definitions
shared by the payment engine and the recurring scheduler.

Amounts are always ``int`` in the asset's smallest unit. ``Decimal`` only
appears in presentation helpers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, TypeAlias

AssetId: TypeAlias = str

# Sentinel address used by the asset table for a chain's native coin
NATIVE_ADDRESS = "native"


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_dt(val: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 timestamp (``Z`` suffix accepted) into an aware datetime."""
    if val is None:
        return None
    if isinstance(val, datetime):
        dt = val
    elif isinstance(val, str):
        dt = datetime.fromisoformat(val.replace("Z", "+00:00"))
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_dt(val: datetime | None) -> str | None:
    """Render a datetime the way the quote provider expects (UTC, ``Z`` suffix)."""
    if val is None:
        return None
    return val.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class Frequency(str, Enum):
    """How often a recurring payment is due."""

    EVERY_FIVE_MINUTES = "5min"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @classmethod
    def from_string(cls, value: str) -> Frequency:
        normalized = value.strip().lower().replace("-", "_")
        aliases = {
            "5min": cls.EVERY_FIVE_MINUTES,
            "5_min": cls.EVERY_FIVE_MINUTES,
            "every_five_minutes": cls.EVERY_FIVE_MINUTES,
            "weekly": cls.WEEKLY,
            "monthly": cls.MONTHLY,
        }
        if normalized in aliases:
            return aliases[normalized]
        raise ValueError(f"Unknown frequency: {value}. Supported: {[f.value for f in cls]}")


class RecipientScope(str, Enum):
    """Where the provider should deliver funds."""

    EXTERNAL_CHAIN = "DESTINATION_CHAIN"  # An address on the destination chain
    WITHIN_PROVIDER = "INTENTS"  # Stays custodied in the intents contract


class SwapType(str, Enum):
    """Which side of the quote the amount fixes."""

    EXACT_INPUT = "EXACT_INPUT"
    EXACT_OUTPUT = "EXACT_OUTPUT"
    FLEX_INPUT = "FLEX_INPUT"


class DepositType(str, Enum):
    """Where the origin funds are deposited from."""

    ORIGIN_CHAIN = "ORIGIN_CHAIN"
    INTENTS = "INTENTS"


class RefundType(str, Enum):
    """Where a failed swap refunds to."""

    ORIGIN_CHAIN = "ORIGIN_CHAIN"
    INTENTS = "INTENTS"


class SettlementState(str, Enum):
    """Execution status reported by the provider's status endpoint."""

    PENDING_DEPOSIT = "PENDING_DEPOSIT"
    KNOWN_DEPOSIT_TX = "KNOWN_DEPOSIT_TX"
    INCOMPLETE_DEPOSIT = "INCOMPLETE_DEPOSIT"
    PROCESSING = "PROCESSING"
    SUCCESS = "SUCCESS"
    REFUNDED = "REFUNDED"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_string(cls, value: str | None) -> SettlementState:
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.upper())
        except ValueError:
            return cls.UNKNOWN

    def is_terminal(self) -> bool:
        return self in (SettlementState.SUCCESS, SettlementState.REFUNDED, SettlementState.FAILED)

    def is_successful(self) -> bool:
        return self == SettlementState.SUCCESS


class OutcomeKind(str, Enum):
    """Closed set of results of one payment attempt."""

    COMPLETED = "completed"
    REJECTED = "rejected"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass(frozen=True)
class AssetInfo:
    """One row of the asset table."""

    asset_id: AssetId
    chain: str
    address: str
    symbol: str
    decimals: int
    name: str
    wraps_native: bool = False

    def __post_init__(self) -> None:
        if not self.chain:
            raise ValueError(f"Asset {self.asset_id} has no chain")
        if self.decimals < 0:
            raise ValueError(f"Asset {self.asset_id} has negative decimals")

    @property
    def is_native(self) -> bool:
        return self.address == NATIVE_ADDRESS

    def format_amount(self, amount: int) -> str:
        """Human-readable amount. Display only: never feed this back into a decision."""
        value = Decimal(amount).scaleb(-self.decimals)
        return f"{value.normalize():f} {self.symbol}"

    def to_units(self, amount: Decimal | str | int) -> int:
        """Convert a human amount ("0.1") to smallest units, rejecting sub-unit precision."""
        value = Decimal(str(amount)).scaleb(self.decimals)
        if value != value.to_integral_value():
            raise ValueError(
                f"{amount} {self.symbol} has more than {self.decimals} decimal places"
            )
        return int(value)


@dataclass(frozen=True)
class TransferIntent:
    """
    A single transfer the quote provider is asked to price.

    Built fresh for every orchestrator run and never mutated afterwards.
    Variants derive modified copies with ``dataclasses.replace``.
    """

    origin_asset: AssetId
    destination_asset: AssetId
    amount: int
    recipient: str
    recipient_scope: RecipientScope
    refund_recipient: str
    deadline: datetime
    max_slippage_bps: int
    swap_type: SwapType = SwapType.EXACT_INPUT
    deposit_type: DepositType = DepositType.INTENTS
    refund_type: RefundType = RefundType.INTENTS
    dry: bool = False

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError("Amount must be positive")
        if not self.recipient:
            raise ValueError("Recipient is required")
        if not self.refund_recipient:
            raise ValueError("Refund recipient is required")
        if not 0 <= self.max_slippage_bps <= 10_000:
            raise ValueError("max_slippage_bps must be between 0 and 10000")


@dataclass
class Quote:
    """
    A provider-issued, time-bounded offer for a TransferIntent.

    The provider identifies a quote by its deposit address, so
    ``provider_quote_id`` is that address; status polling uses it too.
    ``correlation_id`` is the provider's request trace id, for support.
    """

    quoted_input_amount: int
    quoted_output_amount: int
    deposit_address: str
    expiry: datetime
    provider_quote_id: str
    amount_in_formatted: str | None = None
    amount_out_formatted: str | None = None
    min_amount_out: int | None = None
    time_estimate: int | None = None
    correlation_id: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utc_now()) >= self.expiry

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> Quote:
        """
        Build a Quote from a ``POST /v0/quote`` response body.

        Raises:
            KeyError / ValueError: If a mandatory field is missing or malformed
        """
        quote = data["quote"]
        request = data.get("quoteRequest", {})
        expiry = parse_dt(
            quote.get("deadline") or quote.get("timeWhenInactive") or request.get("deadline")
        )
        if expiry is None:
            raise ValueError("Quote response carries no deadline")

        deposit_address = quote.get("depositAddress") or ""
        return cls(
            quoted_input_amount=int(quote["amountIn"]),
            quoted_output_amount=int(quote["amountOut"]),
            deposit_address=deposit_address,
            expiry=expiry,
            provider_quote_id=deposit_address,
            amount_in_formatted=quote.get("amountInFormatted"),
            amount_out_formatted=quote.get("amountOutFormatted"),
            min_amount_out=int(quote["minAmountOut"]) if quote.get("minAmountOut") else None,
            time_estimate=quote.get("timeEstimate"),
            correlation_id=data.get("correlationId"),
            raw=data,
        )


@dataclass
class SettlementStatus:
    """One reading of the provider's execution-status endpoint."""

    state: SettlementState
    settled_amount: int | None = None
    destination_tx_hashes: list[str] = field(default_factory=list)
    updated_at: datetime | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> SettlementStatus:
        details = data.get("swapDetails") or {}
        amount_out = details.get("amountOut")
        hashes = [
            h["hash"] if isinstance(h, dict) else str(h)
            for h in details.get("destinationChainTxHashes", [])
        ]
        return cls(
            state=SettlementState.from_string(data.get("status")),
            settled_amount=int(amount_out) if amount_out else None,
            destination_tx_hashes=hashes,
            updated_at=parse_dt(data.get("updatedAt")),
            raw=data,
        )


@dataclass
class ExecutionOutcome:
    """
    Terminal result of one payment attempt.

    Use the ``completed`` / ``rejected`` / ``timed_out`` / ``failed``
    constructors so only the fields of the matching kind are populated.
    A ``TIMED_OUT`` outcome means "unknown, needs reconciliation": the
    transfer may still settle out-of-band.
    """

    kind: OutcomeKind
    settled_amount: int | None = None
    reason: str | None = None
    cause: str | None = None
    tx_hash: str | None = None
    deposit_address: str | None = None
    finished_at: datetime = field(default_factory=utc_now)
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def completed(cls, settled_amount: int, **kwargs: Any) -> ExecutionOutcome:
        return cls(kind=OutcomeKind.COMPLETED, settled_amount=settled_amount, **kwargs)

    @classmethod
    def rejected(cls, reason: str, **kwargs: Any) -> ExecutionOutcome:
        return cls(kind=OutcomeKind.REJECTED, reason=reason, **kwargs)

    @classmethod
    def timed_out(cls, **kwargs: Any) -> ExecutionOutcome:
        return cls(kind=OutcomeKind.TIMED_OUT, **kwargs)

    @classmethod
    def failed(cls, cause: str, **kwargs: Any) -> ExecutionOutcome:
        return cls(kind=OutcomeKind.FAILED, cause=cause, **kwargs)

    @property
    def success(self) -> bool:
        return self.kind == OutcomeKind.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "settled_amount": str(self.settled_amount) if self.settled_amount is not None else None,
            "reason": self.reason,
            "cause": self.cause,
            "tx_hash": self.tx_hash,
            "deposit_address": self.deposit_address,
            "finished_at": self.finished_at.isoformat(),
            "details": self.details,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExecutionOutcome:
        return cls(
            kind=OutcomeKind(data["kind"]),
            settled_amount=int(data["settled_amount"])
            if data.get("settled_amount") is not None
            else None,
            reason=data.get("reason"),
            cause=data.get("cause"),
            tx_hash=data.get("tx_hash"),
            deposit_address=data.get("deposit_address"),
            finished_at=parse_dt(data["finished_at"]),  # type: ignore[arg-type]
            details=data.get("details", {}),
        )


@dataclass
class PaymentRequest:
    """Input to one orchestrator run."""

    recipient: str
    amount: int
    token: str
    chain: str
    origin_asset: AssetId | None = None
    recipient_scope: RecipientScope = RecipientScope.EXTERNAL_CHAIN
    payment_id: str | None = None

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError("Amount must be positive")
        if not self.recipient:
            raise ValueError("Recipient is required")
        if not self.token or not self.chain:
            raise ValueError("Token and chain are required")


@dataclass
class RecurringPayment:
    """A recurring payment definition and its scheduling state."""

    id: str
    recipient: str
    amount: int
    token: str
    chain: str
    origin_asset: AssetId
    destination_asset: AssetId
    frequency: Frequency
    next_due_at: datetime
    created_at: datetime
    active: bool = True
    recipient_scope: RecipientScope = RecipientScope.EXTERNAL_CHAIN
    anchor_day: int | None = None
    last_outcome: ExecutionOutcome | None = None
    last_run_at: datetime | None = None
    run_count: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)

    def is_due(self, now: datetime) -> bool:
        return self.active and self.next_due_at <= now

    def to_payment_request(self) -> PaymentRequest:
        return PaymentRequest(
            recipient=self.recipient,
            amount=self.amount,
            token=self.token,
            chain=self.chain,
            origin_asset=self.origin_asset,
            recipient_scope=self.recipient_scope,
            payment_id=self.id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "recipient": self.recipient,
            "amount": str(self.amount),
            "token": self.token,
            "chain": self.chain,
            "origin_asset": self.origin_asset,
            "destination_asset": self.destination_asset,
            "frequency": self.frequency.value,
            "next_due_at": self.next_due_at.isoformat(),
            "created_at": self.created_at.isoformat(),
            "active": self.active,
            "recipient_scope": self.recipient_scope.value,
            "anchor_day": self.anchor_day,
            "last_outcome": self.last_outcome.to_dict() if self.last_outcome else None,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "run_count": self.run_count,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RecurringPayment:
        return cls(
            id=data["id"],
            recipient=data["recipient"],
            amount=int(data["amount"]),
            token=data["token"],
            chain=data["chain"],
            origin_asset=data["origin_asset"],
            destination_asset=data["destination_asset"],
            frequency=Frequency(data["frequency"]),
            next_due_at=parse_dt(data["next_due_at"]),  # type: ignore[arg-type]
            created_at=parse_dt(data["created_at"]),  # type: ignore[arg-type]
            active=data.get("active", True),
            recipient_scope=RecipientScope(
                data.get("recipient_scope", RecipientScope.EXTERNAL_CHAIN.value)
            ),
            anchor_day=data.get("anchor_day"),
            last_outcome=ExecutionOutcome.from_dict(data["last_outcome"])
            if data.get("last_outcome")
            else None,
            last_run_at=parse_dt(data.get("last_run_at")),
            run_count=data.get("run_count", 0),
            metadata=data.get("metadata", {}),
        )


@dataclass
class ExecutionRecord:
    """History row: one execution attempt of a recurring payment."""

    payment_id: str
    outcome: ExecutionOutcome
    started_at: datetime
    trigger: str = "schedule"

    def to_dict(self) -> dict[str, Any]:
        return {
            "payment_id": self.payment_id,
            "outcome": self.outcome.to_dict(),
            "started_at": self.started_at.isoformat(),
            "trigger": self.trigger,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExecutionRecord:
        return cls(
            payment_id=data["payment_id"],
            outcome=ExecutionOutcome.from_dict(data["outcome"]),
            started_at=parse_dt(data["started_at"]),  # type: ignore[arg-type]
            trigger=data.get("trigger", "schedule"),
        )
