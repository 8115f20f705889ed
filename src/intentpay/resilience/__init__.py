"""
Resilience Layer for intentpay.

Provides the retry policy used for idempotent provider reads.
"""

from .retry import execute_with_retry, is_transient_error

__all__ = [
    "execute_with_retry",
    "is_transient_error",
]
