"""BalanceGuard - read-only sufficiency check before a payment runs."""

from __future__ import annotations

from dataclasses import dataclass

from intentpay.assets.registry import AssetRegistry
from intentpay.core.exceptions import BalanceQueryError
from intentpay.core.logging import get_logger
from intentpay.wallet.account import Account


@dataclass(frozen=True)
class BalanceCheck:
    """Result of a balance check. All values are smallest-unit integers."""

    sufficient: bool
    available: int
    required: int

    @property
    def shortfall(self) -> int:
        return max(self.required - self.available, 0)


class BalanceGuard:
    """
    Evaluates an account's spendable balance against a required amount.

    For the wrapped native asset the spendable balance is the native coin
    plus what is already deposited, since the orchestrator tops up the
    deposit before negotiating.
    """

    def __init__(self, registry: AssetRegistry) -> None:
        self._registry = registry
        self._logger = get_logger("balance")

    async def spendable_balance(self, account: Account, asset_id: str) -> int:
        """
        Query the spendable balance of ``asset_id``.

        Raises:
            AssetNotFoundError: If the asset is unknown
            BalanceQueryError: If the account query fails
        """
        info = self._registry.lookup(asset_id)
        try:
            deposited = await account.query_balance(asset_id)
            native = await account.query_native_balance() if info.wraps_native else 0
        except BalanceQueryError:
            raise
        except Exception as e:
            raise BalanceQueryError(
                f"Balance query failed: {e}",
                account_id=account.account_id,
                asset_id=asset_id,
            ) from e
        return int(deposited) + int(native)

    async def check_sufficient(
        self,
        account: Account,
        asset_id: str,
        required_amount: int,
    ) -> BalanceCheck:
        """
        Check whether ``account`` can spend ``required_amount`` of ``asset_id``.

        Args:
            account: Account to query
            asset_id: Asset to check
            required_amount: Amount needed, in smallest units

        Returns:
            BalanceCheck with ``sufficient == (available >= required_amount)``

        Raises:
            BalanceQueryError: If the underlying query fails (not retried)
        """
        if required_amount < 0:
            raise ValueError("required_amount must not be negative")

        available = await self.spendable_balance(account, asset_id)
        check = BalanceCheck(
            sufficient=available >= required_amount,
            available=available,
            required=required_amount,
        )

        info = self._registry.lookup(asset_id)
        if check.sufficient:
            self._logger.debug(
                f"Balance OK for {account.account_id}: {info.format_amount(available)} "
                f">= {info.format_amount(required_amount)}"
            )
        else:
            self._logger.info(
                f"Insufficient balance for {account.account_id}: "
                f"{info.format_amount(available)} < {info.format_amount(required_amount)}"
            )
        return check
