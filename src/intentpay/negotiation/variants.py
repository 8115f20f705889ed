"""
Quote request variants.

The provider's destination-asset encoding and recipient-scope flag are not
reliably discoverable ahead of time, so a request is described as a base
TransferIntent plus an ordered list of overrides. The negotiator tries
them in order until one is accepted.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any

from intentpay.core.types import (
    AssetInfo,
    RecipientScope,
    SwapType,
    TransferIntent,
    format_dt,
)


class AssetEncoding(str, Enum):
    """How the destination asset is written in the quote request."""

    ASSET_ID = "ASSET_ID"  # nep141:base-0x8335...omft.near
    CHAIN_PREFIXED = "CHAIN_PREFIXED"  # base:0x8335...
    BARE_ADDRESS = "BARE_ADDRESS"  # 0x8335...

    @classmethod
    def from_string(cls, value: str) -> AssetEncoding:
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValueError(
                f"Unknown asset encoding: {value}. Supported: {[e.value for e in cls]}"
            ) from None


def encode_destination(info: AssetInfo, encoding: AssetEncoding) -> str:
    """Render the destination asset in the requested encoding."""
    if encoding == AssetEncoding.ASSET_ID:
        return info.asset_id
    if info.is_native:
        raise ValueError(f"{info.asset_id} is a native coin and has no contract address")
    address = info.address.lower() if info.address.startswith("0x") else info.address
    if encoding == AssetEncoding.BARE_ADDRESS:
        return address
    return f"{info.chain}:{address}"


def _same_units(origin_asset: str, origin: AssetInfo | None, destination: AssetInfo) -> bool:
    if origin_asset == destination.asset_id:
        return True
    return (
        origin is not None
        and origin.symbol == destination.symbol
        and origin.decimals == destination.decimals
    )


@dataclass(frozen=True)
class ParamOverride:
    """
    One variant of a quote request.

    ``None`` fields keep the base intent's value.
    """

    name: str
    recipient_scope: RecipientScope | None = None
    asset_encoding: AssetEncoding = AssetEncoding.ASSET_ID
    swap_type: SwapType | None = None
    slippage_bps: int | None = None

    def apply(self, intent: TransferIntent, deadline: datetime) -> TransferIntent:
        """Derive the intent this variant sends, with a freshly computed deadline."""
        changes: dict[str, Any] = {"deadline": deadline}
        if self.recipient_scope is not None:
            changes["recipient_scope"] = self.recipient_scope
        if self.swap_type is not None:
            changes["swap_type"] = self.swap_type
        if self.slippage_bps is not None:
            changes["max_slippage_bps"] = self.slippage_bps
        return replace(intent, **changes)

    def build_request(
        self,
        intent: TransferIntent,
        destination: AssetInfo,
        origin: AssetInfo | None = None,
    ) -> dict[str, Any]:
        """
        Build the provider request body for an already-applied intent.

        Raises:
            ValueError: If the variant cannot express this intent. Exact-output
                reads ``amount`` in destination units, so it only applies when
                origin and destination are the same token with the same
                decimals (e.g. USDC on NEAR to USDC on Base).
        """
        if intent.swap_type == SwapType.EXACT_OUTPUT and not _same_units(
            intent.origin_asset, origin, destination
        ):
            raise ValueError(
                f"Exact-output needs matching assets, got {intent.origin_asset} "
                f"-> {destination.asset_id}"
            )
        return {
            "dry": intent.dry,
            "swapType": intent.swap_type.value,
            "slippageTolerance": intent.max_slippage_bps,
            "originAsset": intent.origin_asset,
            "depositType": intent.deposit_type.value,
            "destinationAsset": encode_destination(destination, self.asset_encoding),
            "amount": str(intent.amount),
            "refundTo": intent.refund_recipient,
            "refundType": intent.refund_type.value,
            "recipient": intent.recipient,
            "recipientType": intent.recipient_scope.value,
            "deadline": format_dt(intent.deadline),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "recipient_scope": self.recipient_scope.value if self.recipient_scope else None,
            "asset_encoding": self.asset_encoding.value,
            "swap_type": self.swap_type.value if self.swap_type else None,
            "slippage_bps": self.slippage_bps,
        }


@dataclass
class VariantFailure:
    """A variant that was tried and the error it produced."""

    variant: ParamOverride
    error: Exception

    def to_dict(self) -> dict[str, Any]:
        return {
            "variant": self.variant.name,
            "error": str(self.error),
            "error_type": type(self.error).__name__,
        }


# Order observed to work against the live provider, most specific first
DEFAULT_VARIANTS: tuple[ParamOverride, ...] = (
    ParamOverride(name="asset-id"),
    ParamOverride(name="bare-address", asset_encoding=AssetEncoding.BARE_ADDRESS),
    ParamOverride(
        name="chain-prefixed-within-provider",
        asset_encoding=AssetEncoding.CHAIN_PREFIXED,
        recipient_scope=RecipientScope.WITHIN_PROVIDER,
    ),
    ParamOverride(
        name="chain-prefixed-exact-output",
        asset_encoding=AssetEncoding.CHAIN_PREFIXED,
        swap_type=SwapType.EXACT_OUTPUT,
    ),
)


def prioritize(
    variants: tuple[ParamOverride, ...] | list[ParamOverride],
    encoding: AssetEncoding | None,
) -> list[ParamOverride]:
    """Move variants using ``encoding`` to the front, keeping relative order otherwise."""
    ordered = list(variants)
    if encoding is None:
        return ordered
    preferred = [v for v in ordered if v.asset_encoding == encoding]
    rest = [v for v in ordered if v.asset_encoding != encoding]
    return preferred + rest
