"""Quote negotiation with parameter-variant fallback."""

from intentpay.negotiation.negotiator import QuoteNegotiator
from intentpay.negotiation.variants import (
    DEFAULT_VARIANTS,
    AssetEncoding,
    ParamOverride,
    VariantFailure,
    encode_destination,
    prioritize,
)

__all__ = [
    "AssetEncoding",
    "DEFAULT_VARIANTS",
    "ParamOverride",
    "QuoteNegotiator",
    "VariantFailure",
    "encode_destination",
    "prioritize",
]
