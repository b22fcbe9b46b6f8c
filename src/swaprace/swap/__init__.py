"""Swap execution.

Provides:
- SwapExecutor: state machine driving one swap attempt
- SwapResult: outcome of an attempt
"""

from swaprace.swap.executor import SwapExecutor, SwapResult, build_transaction

__all__ = [
    "SwapExecutor",
    "SwapResult",
    "build_transaction",
]
