"""Account interface and balance checks."""

from intentpay.wallet.account import Account, SimulatedAccount, SubmittedTransfer
from intentpay.wallet.balance import BalanceCheck, BalanceGuard

__all__ = [
    "Account",
    "BalanceCheck",
    "BalanceGuard",
    "SimulatedAccount",
    "SubmittedTransfer",
]
