"""Quote routing: providers, normalization and aggregation.

Providers:
- 0x: swap API quotes (EVM chains)
- 1inch: aggregation protocol swaps (EVM chains)
- LI.FI: same-chain quotes
- HTTP: any endpoint accepting the canonical POST body
- Dry run: deterministic simulated quotes
"""

from swaprace.routing.aggregator import QuoteAggregator, rank_quotes
from swaprace.routing.base import QuoteProvider
from swaprace.routing.dry_run import DryRunProvider
from swaprace.routing.factory import create_aggregator, create_provider, create_simulated_aggregator
from swaprace.routing.http import HttpQuoteProvider
from swaprace.routing.lifi import LiFiProvider
from swaprace.routing.normalizer import PricingContext
from swaprace.routing.oneinch import OneInchProvider
from swaprace.routing.zeroex import ZeroExProvider

__all__ = [
    # Base classes
    "QuoteProvider",
    "QuoteAggregator",
    "PricingContext",
    "rank_quotes",
    # Providers
    "ZeroExProvider",
    "OneInchProvider",
    "LiFiProvider",
    "HttpQuoteProvider",
    "DryRunProvider",
    # Factory functions
    "create_aggregator",
    "create_provider",
    "create_simulated_aggregator",
]
