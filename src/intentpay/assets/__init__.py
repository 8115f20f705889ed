"""Static asset table and lookups."""

from intentpay.assets.registry import (
    CHAIN_ALIASES,
    COMMON_ASSETS,
    DEFAULT_ASSETS,
    AssetRegistry,
    default_registry,
    normalize_chain,
)

__all__ = [
    "AssetRegistry",
    "CHAIN_ALIASES",
    "COMMON_ASSETS",
    "DEFAULT_ASSETS",
    "default_registry",
    "normalize_chain",
]
