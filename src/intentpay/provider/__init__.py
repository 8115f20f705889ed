"""Quote/settlement provider API client."""

from intentpay.provider.client import OneClickClient

__all__ = ["OneClickClient"]
