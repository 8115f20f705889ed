"""Transfer submission and settlement polling."""

from intentpay.execution.executor import TransferExecutor
from intentpay.execution.lock import AccountLock

__all__ = ["AccountLock", "TransferExecutor"]
