"""
Exception hierarchy for intentpay.

All package-specific exceptions inherit from IntentPayError for easy catching.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from intentpay.negotiation.variants import VariantFailure


class IntentPayError(Exception):
    """
    Base exception for all intentpay errors.

    Example:
        >>> try:
        ...     await client.execute_now(payment_id)
        ... except IntentPayError as e:
        ...     print(f"Payment engine error: {e}")
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(IntentPayError):
    """
    Configuration is missing or invalid.

    Raised when:
    - Required configuration values are not provided
    - The asset table is inconsistent
    - A token/chain pair cannot be resolved to an asset
    """

    pass


class AssetNotFoundError(ConfigurationError):
    """An asset id (or token/chain pair) is not present in the registry."""

    def __init__(
        self,
        message: str,
        asset_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.asset_id = asset_id


class ValidationError(IntentPayError):
    """
    Input validation error.

    Raised when:
    - Required parameters are missing
    - Parameter values are invalid
    """

    pass


class PaymentNotFoundError(ValidationError):
    """No recurring payment is registered under the given id."""

    def __init__(self, payment_id: str) -> None:
        super().__init__(f"Recurring payment not found: {payment_id}")
        self.payment_id = payment_id


class BalanceQueryError(IntentPayError):
    """
    The account could not report a balance.

    Transient chain or RPC failures surface here. The balance guard does
    not retry; the caller decides.
    """

    def __init__(
        self,
        message: str,
        account_id: str | None = None,
        asset_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.account_id = account_id
        self.asset_id = asset_id


class ProviderError(IntentPayError):
    """
    Quote provider API communication error.

    Raised when:
    - HTTP request fails (timeout, connection error)
    - API returns a non-2xx status (rejected quote parameters included)
    - API returns a body that cannot be parsed
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code
        self.url = url

    def is_rate_limited(self) -> bool:
        """Check if this is a rate limit error."""
        return self.status_code == 429

    def is_server_error(self) -> bool:
        """Check if this is a server-side error."""
        return self.status_code is not None and 500 <= self.status_code < 600

    def is_transient(self) -> bool:
        """Transport failures (no status) and 429/5xx are worth retrying for reads."""
        return self.status_code is None or self.is_rate_limited() or self.is_server_error()

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"[{self.status_code}] {self.message}"
        return self.message


class PaymentError(IntentPayError):
    """Base exception for errors raised while executing a payment."""

    pass


class NegotiationExhausted(PaymentError):
    """
    Every quote variant was rejected.

    ``failures`` holds one VariantFailure per attempted variant, in the
    order the variants were tried.
    """

    def __init__(self, failures: list[VariantFailure]) -> None:
        super().__init__(
            f"All {len(failures)} quote variants failed",
            details={"variants": [f.to_dict() for f in failures]},
        )
        self.failures = failures

    def __str__(self) -> str:
        summary = "; ".join(f"{f.variant.name}: {f.error}" for f in self.failures)
        return f"{self.message} ({summary})"


class QuoteExpiredError(PaymentError):
    """A quote reached its expiry before it could be submitted."""

    def __init__(self, quote_id: str, expired_at: datetime) -> None:
        super().__init__(
            f"Quote {quote_id} expired at {expired_at.isoformat()}",
            details={"quote_id": quote_id},
        )
        self.quote_id = quote_id
        self.expired_at = expired_at


class AccountBusyError(PaymentError):
    """Another lane or process holds the account's transaction lock."""

    def __init__(self, account_id: str) -> None:
        super().__init__(
            f"Account {account_id} is busy with another submission",
            details={"account_id": account_id},
        )
        self.account_id = account_id


class SubmissionFailed(PaymentError):
    """
    The token transfer to the settlement target was not accepted.

    Terminal for the attempt: the quote must not be reused.
    """

    def __init__(
        self,
        message: str,
        deposit_address: str | None = None,
        cause: BaseException | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.deposit_address = deposit_address
        self.cause = cause


class DepositError(PaymentError):
    """Wrapping the native coin into its deposited representation failed."""

    def __init__(
        self,
        message: str,
        required_amount: int,
        deposited_amount: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.required_amount = required_amount
        self.deposited_amount = deposited_amount
        self.shortfall = required_amount - deposited_amount
