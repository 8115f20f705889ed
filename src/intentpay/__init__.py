"""
intentpay - Recurring cross-chain payments over the NEAR Intents 1Click API.

Usage:
    >>> from intentpay import IntentPay, SimulatedAccount
    >>>
    >>> account = SimulatedAccount("alice.near", native_balance=10**24)
    >>> async with IntentPay(account) as client:
    ...     payment_id = await client.add_recurring_payment(
    ...         recipient="0x...",
    ...         amount="0.1",
    ...         token="USDC",
    ...         chain="Base",
    ...         frequency="weekly",
    ...     )
    ...     outcome = await client.execute_now(payment_id)
"""

from intentpay.assets import COMMON_ASSETS, AssetRegistry, default_registry
from intentpay.client import IntentPay
from intentpay.core.config import Config
from intentpay.core.exceptions import (
    AccountBusyError,
    AssetNotFoundError,
    BalanceQueryError,
    ConfigurationError,
    DepositError,
    IntentPayError,
    NegotiationExhausted,
    PaymentError,
    PaymentNotFoundError,
    ProviderError,
    QuoteExpiredError,
    SubmissionFailed,
    ValidationError,
)
from intentpay.core.logging import configure_logging, get_logger
from intentpay.core.types import (
    AssetInfo,
    ExecutionOutcome,
    ExecutionRecord,
    Frequency,
    OutcomeKind,
    PaymentRequest,
    Quote,
    RecipientScope,
    RecurringPayment,
    SettlementState,
    TransferIntent,
)
from intentpay.execution import AccountLock, TransferExecutor
from intentpay.negotiation import DEFAULT_VARIANTS, AssetEncoding, ParamOverride, QuoteNegotiator
from intentpay.payment import PaymentOrchestrator
from intentpay.provider import OneClickClient
from intentpay.scheduler import RecurringScheduler, SchedulerDriver
from intentpay.wallet import Account, BalanceCheck, BalanceGuard, SimulatedAccount

__version__ = "0.1.0"

__all__ = [
    # Client
    "IntentPay",
    "Config",
    # Components
    "AccountLock",
    "AssetRegistry",
    "BalanceGuard",
    "OneClickClient",
    "PaymentOrchestrator",
    "QuoteNegotiator",
    "RecurringScheduler",
    "SchedulerDriver",
    "TransferExecutor",
    "default_registry",
    # Accounts
    "Account",
    "SimulatedAccount",
    # Types
    "AssetEncoding",
    "AssetInfo",
    "BalanceCheck",
    "COMMON_ASSETS",
    "DEFAULT_VARIANTS",
    "ExecutionOutcome",
    "ExecutionRecord",
    "Frequency",
    "OutcomeKind",
    "ParamOverride",
    "PaymentRequest",
    "Quote",
    "RecipientScope",
    "RecurringPayment",
    "SettlementState",
    "TransferIntent",
    # Exceptions
    "AccountBusyError",
    "AssetNotFoundError",
    "BalanceQueryError",
    "ConfigurationError",
    "DepositError",
    "IntentPayError",
    "NegotiationExhausted",
    "PaymentError",
    "PaymentNotFoundError",
    "ProviderError",
    "QuoteExpiredError",
    "SubmissionFailed",
    "ValidationError",
    # Logging
    "configure_logging",
    "get_logger",
]
