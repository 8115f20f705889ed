"""
AssetRegistry - static lookup of intents asset ids.

The table is loaded once at process start. Derived indices (by chain,
by on-chain address, by symbol) are built in the constructor and never
change afterwards.
"""

from __future__ import annotations

from collections.abc import Iterable
from functools import lru_cache

from intentpay.core.exceptions import AssetNotFoundError, ConfigurationError
from intentpay.core.types import NATIVE_ADDRESS, AssetId, AssetInfo

# Display names used by the dashboard/CLI mapped to the table's chain keys
CHAIN_ALIASES: dict[str, str] = {
    "ethereum": "eth",
    "eth": "eth",
    "base": "base",
    "arbitrum": "arbitrum",
    "arb": "arbitrum",
    "solana": "solana",
    "sol": "solana",
    "near": "near",
    "gnosis": "gnosis",
    "tron": "tron",
    "bitcoin": "bitcoin",
    "btc": "bitcoin",
    "zcash": "zcash",
    "berachain": "berachain",
}


def _asset(
    asset_id: str,
    address: str,
    chain: str,
    symbol: str,
    decimals: int,
    name: str,
    wraps_native: bool = False,
) -> AssetInfo:
    return AssetInfo(
        asset_id=asset_id,
        chain=chain,
        address=address,
        symbol=symbol,
        decimals=decimals,
        name=name,
        wraps_native=wraps_native,
    )


DEFAULT_ASSETS: tuple[AssetInfo, ...] = (
    # NEAR
    _asset("nep141:wrap.near", "wrap.near", "near", "NEAR", 24, "Near", wraps_native=True),
    _asset("nep141:near.omft.near", "wrap.near", "near", "NEAR", 24, "Near"),
    # USDC
    _asset(
        "nep141:eth-0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48.omft.near",
        "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", "eth", "USDC", 6, "USD Coin",
    ),
    _asset(
        "nep141:17208628f84f5d6ad33f0da3bbbeb27ffcb398eac501a31bd6ad2011e36133a1",
        "17208628f84f5d6ad33f0da3bbbeb27ffcb398eac501a31bd6ad2011e36133a1",
        "near", "USDC", 6, "USD Coin",
    ),
    _asset(
        "nep141:base-0x833589fcd6edb6e08f4c7c32d4f71b54bda02913.omft.near",
        "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913", "base", "USDC", 6, "USD Coin",
    ),
    _asset(
        "nep141:arb-0xaf88d065e77c8cc2239327c5edb3a432268e5831.omft.near",
        "0xaf88d065e77c8cC2239327C5EDb3A432268e5831", "arbitrum", "USDC", 6, "USD Coin",
    ),
    _asset(
        "nep141:sol-5ce3bf3a31af18be40ba30f721101b4341690186.omft.near",
        "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v", "solana", "USDC", 6, "USD Coin",
    ),
    _asset(
        "nep141:gnosis-0x2a22f9c3b484c3629090feed35f17ff8f88f76f0.omft.near",
        "0x2a22f9c3b484c3629090feed35f17ff8f88f76f0", "gnosis", "USDC", 6, "USD Coin",
    ),
    # USDT
    _asset(
        "nep141:eth-0xdac17f958d2ee523a2206206994597c13d831ec7.omft.near",
        "0xdAC17F958D2ee523a2206206994597C13D831ec7", "eth", "USDT", 6, "Tether USD",
    ),
    _asset("nep141:usdt.tether-token.near", "usdt.tether-token.near", "near", "USDT", 6, "Tether USD"),
    _asset(
        "nep141:arb-0xfd086bc7cd5c481dcc9c85ebe478a1c0b69fcbb9.omft.near",
        "0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9", "arbitrum", "USDT", 6, "Tether USD",
    ),
    _asset(
        "nep141:sol-c800a4bd850783ccb82c2b2c7e84175443606352.omft.near",
        "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB", "solana", "USDT", 6, "Tether USD",
    ),
    _asset(
        "nep141:tron-d28a265909efecdcee7c5028585214ea0b96f015.omft.near",
        "TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t", "tron", "USDT", 6, "Tether USD",
    ),
    # ETH
    _asset("nep141:eth.omft.near", NATIVE_ADDRESS, "eth", "ETH", 18, "ETH"),
    _asset("nep141:eth.bridge.near", "eth.bridge.near", "near", "ETH", 18, "ETH"),
    _asset("nep141:aurora", "aurora", "near", "ETH", 18, "ETH"),
    _asset("nep141:base.omft.near", NATIVE_ADDRESS, "base", "ETH", 18, "ETH"),
    _asset("nep141:arb.omft.near", NATIVE_ADDRESS, "arbitrum", "ETH", 18, "ETH"),
    # DAI
    _asset(
        "nep141:eth-0x6b175474e89094c44da98b954eedeac495271d0f.omft.near",
        "0x6b175474e89094c44da98b954eedeac495271d0f", "eth", "DAI", 18, "DAI",
    ),
    _asset("nep141:gnosis.omft.near", NATIVE_ADDRESS, "gnosis", "xDAI", 18, "xDAI"),
    # BTC
    _asset("nep141:btc.omft.near", NATIVE_ADDRESS, "bitcoin", "BTC", 8, "Bitcoin"),
    _asset("nep141:nbtc.bridge.near", "nbtc.bridge.near", "near", "nBTC", 8, "Bitcoin"),
    # Aurora
    _asset(
        "nep141:aaaaaa20d9e0e2461697782ef11675f668207961.factory.bridge.near",
        "aaaaaa20d9e0e2461697782ef11675f668207961.factory.bridge.near",
        "near", "AURORA", 18, "Aurora",
    ),
    _asset(
        "nep141:eth-0xaaaaaa20d9e0e2461697782ef11675f668207961.omft.near",
        "0xAaAAAA20D9E0e2461697782ef11675f668207961", "eth", "AURORA", 18, "Aurora",
    ),
    # Other natives
    _asset("nep141:zec.omft.near", NATIVE_ADDRESS, "zcash", "ZEC", 8, "Zcash"),
    _asset("nep141:bera.omft.near", NATIVE_ADDRESS, "berachain", "BERA", 18, "BERA"),
    # Meme and misc
    _asset(
        "nep141:sol-c58e6539c2f2e097c251f8edf11f9c03e581f8d4.omft.near",
        "6p6xgHyF7AeE6TZkSmFsko444wqoP15icUSqi2jfGiPN", "solana", "TRUMP", 6, "OFFICIAL TRUMP",
    ),
    _asset(
        "nep141:sol-d600e625449a4d9380eaf5e3265e54c90d34e260.omft.near",
        "FUAfBo2jgks6gB4Z4LfZkqSZgzNucisEHqnNebaRxM1P", "solana", "MELANIA", 6,
        "Official Melania Meme",
    ),
    _asset(
        "nep141:eth-0x6982508145454ce325ddbe47a25d4ec3d2311933.omft.near",
        "0x6982508145454Ce325dDbE47a25d4ec3d2311933", "eth", "PEPE", 18, "Pepe",
    ),
    _asset(
        "nep141:eth-0x95ad61b0a150d79219dcf64e1e6cc01f0b64c4ce.omft.near",
        "0x95aD61b0a150d79219dCF64E1E6Cc01f0B64C4cE", "eth", "SHIB", 18, "Shiba Inu",
    ),
    _asset(
        "nep141:eth-0x514910771af9ca656af840dff83e8264ecf986ca.omft.near",
        "0x514910771AF9Ca656af840dff83E8264EcF986CA", "eth", "LINK", 18, "Chainlink",
    ),
)

COMMON_ASSETS: dict[str, AssetId] = {
    "NEAR": "nep141:wrap.near",
    "USDC_ETH": "nep141:eth-0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48.omft.near",
    "USDC_BASE": "nep141:base-0x833589fcd6edb6e08f4c7c32d4f71b54bda02913.omft.near",
    "USDC_ARB": "nep141:arb-0xaf88d065e77c8cc2239327c5edb3a432268e5831.omft.near",
    "USDC_SOL": "nep141:sol-5ce3bf3a31af18be40ba30f721101b4341690186.omft.near",
    "USDT_ETH": "nep141:eth-0xdac17f958d2ee523a2206206994597c13d831ec7.omft.near",
    "USDT_ARB": "nep141:arb-0xfd086bc7cd5c481dcc9c85ebe478a1c0b69fcbb9.omft.near",
    "USDT_SOL": "nep141:sol-c800a4bd850783ccb82c2b2c7e84175443606352.omft.near",
    "ETH": "nep141:eth.omft.near",
    "ETH_BASE": "nep141:base.omft.near",
    "ETH_ARB": "nep141:arb.omft.near",
    "DAI": "nep141:eth-0x6b175474e89094c44da98b954eedeac495271d0f.omft.near",
    "BTC": "nep141:btc.omft.near",
}


def normalize_chain(chain: str) -> str:
    """Map a display chain name ("Base", "Ethereum") to the table's chain key."""
    key = chain.strip().lower()
    return CHAIN_ALIASES.get(key, key)


class AssetRegistry:
    """
    Read-only asset table with derived indices.

    Example:
        >>> registry = default_registry()
        >>> registry.lookup(COMMON_ASSETS["USDC_BASE"]).decimals
        6
        >>> registry.resolve("USDC", "Base") == COMMON_ASSETS["USDC_BASE"]
        True
    """

    def __init__(self, entries: Iterable[AssetInfo]) -> None:
        self._assets: dict[AssetId, AssetInfo] = {}
        self._by_chain: dict[str, list[AssetId]] = {}
        self._by_address: dict[str, list[AssetId]] = {}
        self._by_symbol: dict[str, list[AssetId]] = {}

        for info in entries:
            if info.asset_id in self._assets:
                raise ConfigurationError(f"Duplicate asset id in registry: {info.asset_id}")
            self._assets[info.asset_id] = info
            self._by_chain.setdefault(info.chain, []).append(info.asset_id)
            if not info.is_native:
                self._by_address.setdefault(info.address.lower(), []).append(info.asset_id)
            self._by_symbol.setdefault(info.symbol.upper(), []).append(info.asset_id)

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._assets

    def __iter__(self):
        return iter(self._assets.values())

    def __len__(self) -> int:
        return len(self._assets)

    def lookup(self, asset_id: AssetId) -> AssetInfo:
        """
        Get the AssetInfo for an asset id.

        Raises:
            AssetNotFoundError: If the id is not in the table
        """
        info = self._assets.get(asset_id)
        if info is None:
            raise AssetNotFoundError(f"Unknown asset: {asset_id}", asset_id=asset_id)
        return info

    def get(self, asset_id: AssetId) -> AssetInfo | None:
        """Get the AssetInfo for an asset id, or None."""
        return self._assets.get(asset_id)

    def by_chain(self, chain: str) -> list[AssetId]:
        return list(self._by_chain.get(normalize_chain(chain), []))

    def by_address(self, address: str) -> list[AssetId]:
        return list(self._by_address.get(address.lower(), []))

    def by_symbol(self, symbol: str) -> list[AssetId]:
        return list(self._by_symbol.get(symbol.upper(), []))

    def chains(self) -> list[str]:
        return sorted(self._by_chain)

    def native_wrap_asset(self) -> AssetInfo | None:
        """The wrapped representation of the account chain's native coin, if any."""
        for info in self._assets.values():
            if info.wraps_native:
                return info
        return None

    def resolve(self, token: str, chain: str) -> AssetId:
        """
        Resolve a token symbol on a chain to an asset id.

        When the table has several entries for the pair, the first one in
        table order wins.

        Raises:
            AssetNotFoundError: If no asset matches
        """
        chain_key = normalize_chain(chain)
        for asset_id in self._by_symbol.get(token.strip().upper(), []):
            if self._assets[asset_id].chain == chain_key:
                return asset_id
        raise AssetNotFoundError(
            f"Unsupported token/chain combination: {token} on {chain}",
            details={"token": token, "chain": chain},
        )


@lru_cache(maxsize=1)
def default_registry() -> AssetRegistry:
    """Shared registry built from DEFAULT_ASSETS."""
    return AssetRegistry(DEFAULT_ASSETS)
