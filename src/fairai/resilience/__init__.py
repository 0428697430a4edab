"""
Resilience Layer for FairAI.

Retry with exponential backoff for transient ledger and RPC failures.
"""

from .retry import execute_with_retry, is_transient_error

__all__ = [
    "execute_with_retry",
    "is_transient_error",
]
