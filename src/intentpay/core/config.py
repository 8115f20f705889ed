"""
Configuration management for intentpay.

Handles loading configuration from environment variables (optionally
from a ``.env`` file) and validation.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from typing import Any

from dotenv import load_dotenv

ENV_PREFIX = "INTENTPAY_"


def _get_env_var(name: str, default: str | None = None, required: bool = False) -> str | None:
    """Get environment variable with optional default."""
    value = os.environ.get(f"{ENV_PREFIX}{name}", default)
    if required and not value:
        raise ValueError(f"Required environment variable {ENV_PREFIX}{name} is not set")
    return value


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _parse_encoding_overrides(raw: str | None) -> dict[str, str]:
    """Parse ``"base=CHAIN_PREFIXED,arbitrum=BARE_ADDRESS"``."""
    if not raw:
        return {}
    result = {}
    for pair in raw.split(","):
        if not pair.strip():
            continue
        chain, _, encoding = pair.partition("=")
        result[chain.strip().lower()] = encoding.strip().upper()
    return result


@dataclass(frozen=True)
class Config:
    """Engine configuration."""

    account_id: str
    api_token: str | None = None
    api_base_url: str = "https://1click.chaindefuser.com"

    # Asset the account pays from (wrapped native NEAR by default)
    origin_asset: str = "nep141:wrap.near"
    # Floor on the balance a run requires (origin units); the check uses max(amount, floor)
    min_required_balance: int = 0
    max_slippage_bps: int = 100

    # Timeouts (seconds)
    request_timeout: float = 30.0
    quote_deadline_seconds: int = 900
    status_poll_interval: float = 5.0
    settlement_timeout: float = 900.0
    scheduler_check_interval: float = 60.0
    lock_ttl: int = 60

    # Per-chain preferred destination encoding, e.g. {"base": "CHAIN_PREFIXED"}
    asset_encoding_overrides: dict[str, str] = field(default_factory=dict)

    storage_backend: str = "memory"
    redis_url: str | None = None

    # Environment & Logging
    log_level: str = "INFO"
    log_json: bool = False
    env: str = "development"

    def __post_init__(self) -> None:
        if not self.account_id:
            raise ValueError("account_id is required")
        if not 0 <= self.max_slippage_bps <= 10_000:
            raise ValueError("max_slippage_bps must be between 0 and 10000")
        if self.min_required_balance < 0:
            raise ValueError("min_required_balance must not be negative")
        if self.status_poll_interval <= 0:
            raise ValueError("status_poll_interval must be positive")
        if self.settlement_timeout <= 0:
            raise ValueError("settlement_timeout must be positive")
        if self.scheduler_check_interval <= 0:
            raise ValueError("scheduler_check_interval must be positive")
        # The driver must look more often than the shortest frequency (5 minutes)
        if self.scheduler_check_interval >= 300:
            raise ValueError("scheduler_check_interval must be shorter than 300 seconds")

    @classmethod
    def from_env(cls, env_file: str | None = None, **overrides: Any) -> Config:
        """
        Load configuration from environment variables.

        Args:
            env_file: Optional ``.env`` file loaded first (existing variables win)
            **overrides: Explicit values that take precedence over the environment
        """
        if env_file:
            load_dotenv(env_file, override=False)

        account_id = overrides.get("account_id") or _get_env_var("ACCOUNT_ID", required=True)

        def pick(key: str, env_name: str, cast: Any = str) -> Any:
            if key in overrides:
                return overrides[key]
            raw = _get_env_var(env_name)
            if raw is None or raw == "":
                return getattr(cls, key)
            return cast(raw)

        return cls(
            account_id=account_id,  # type: ignore[arg-type]
            api_token=overrides.get("api_token") or _get_env_var("API_TOKEN"),
            api_base_url=pick("api_base_url", "API_BASE_URL"),
            origin_asset=pick("origin_asset", "ORIGIN_ASSET"),
            min_required_balance=pick("min_required_balance", "MIN_REQUIRED_BALANCE", int),
            max_slippage_bps=pick("max_slippage_bps", "MAX_SLIPPAGE_BPS", int),
            request_timeout=pick("request_timeout", "REQUEST_TIMEOUT", float),
            quote_deadline_seconds=pick("quote_deadline_seconds", "QUOTE_DEADLINE_SECONDS", int),
            status_poll_interval=pick("status_poll_interval", "STATUS_POLL_INTERVAL", float),
            settlement_timeout=pick("settlement_timeout", "SETTLEMENT_TIMEOUT", float),
            scheduler_check_interval=pick(
                "scheduler_check_interval", "SCHEDULER_CHECK_INTERVAL", float
            ),
            lock_ttl=pick("lock_ttl", "LOCK_TTL", int),
            asset_encoding_overrides=overrides.get("asset_encoding_overrides")
            or _parse_encoding_overrides(_get_env_var("ASSET_ENCODINGS")),
            storage_backend=pick("storage_backend", "STORAGE_BACKEND"),
            redis_url=overrides.get("redis_url") or _get_env_var("REDIS_URL"),
            log_level=pick("log_level", "LOG_LEVEL"),
            log_json=pick("log_json", "LOG_JSON", _parse_bool),
            env=pick("env", "ENV"),
        )

    def with_updates(self, **updates: Any) -> Config:
        """Create a new Config with updated values."""
        known = {f.name for f in fields(self)}
        unknown = set(updates) - known
        if unknown:
            raise ValueError(f"Unknown config fields: {sorted(unknown)}")
        return replace(self, **updates)

    def masked_api_token(self) -> str:
        """Return API token with most characters masked for safe logging."""
        if not self.api_token:
            return "<none>"
        if len(self.api_token) <= 8:
            return "****"
        return self.api_token[:4] + "..." + self.api_token[-4:]
