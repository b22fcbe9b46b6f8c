"""Fan-out quote aggregation with latest-request-wins semantics."""

import asyncio
import logging
from typing import Iterable, Optional

from swaprace.errors import AggregateNoRouteError, Ok
from swaprace.models import AggregationResult, Quote, SwapRequest
from swaprace.routing.base import QuoteProvider

logger = logging.getLogger(__name__)


def rank_quotes(fingerprint: str, quotes: Iterable[Quote]) -> AggregationResult:
    """Mark the best quote and order the set.

    Available quotes come first by descending net value; the sort is stable
    so ties keep registration order. Error quotes follow in registration
    order.
    """
    quotes = list(quotes)
    available = sorted(
        (q for q in quotes if q.is_available),
        key=lambda q: q.net_value_usd,
        reverse=True,
    )
    failed = [q.mark_best(False) for q in quotes if not q.is_available]

    if not available:
        details = "; ".join(f"{q.provider}: {q.error}" for q in failed)
        message = AggregateNoRouteError.message + (f" ({details})" if details else "")
        return AggregationResult(fingerprint=fingerprint, quotes=tuple(failed), error=message)

    best = available[0].mark_best(True)
    ranked = [best] + [q.mark_best(False) for q in available[1:]]
    return AggregationResult(
        fingerprint=fingerprint,
        quotes=tuple(ranked + failed),
        best_quote=best,
    )


class QuoteAggregator:
    """Queries every registered provider concurrently and ranks the results.

    Each call to `aggregate` supersedes every earlier one: a result set that
    resolves after a newer request was issued is dropped.
    """

    def __init__(self, providers: Optional[list[QuoteProvider]] = None):
        self.providers: list[QuoteProvider] = list(providers or [])
        self._generation = 0
        self._latest_fingerprint: Optional[str] = None

    def add_provider(self, provider: QuoteProvider) -> None:
        """Add a provider; registration order breaks ranking ties."""
        self.providers.append(provider)

    @property
    def provider_names(self) -> list[str]:
        return [p.name for p in self.providers]

    @property
    def latest_fingerprint(self) -> Optional[str]:
        return self._latest_fingerprint

    def supersede(self) -> None:
        """Invalidate every in-flight aggregation."""
        self._generation += 1
        self._latest_fingerprint = None

    async def get_all_quotes(self, request: SwapRequest) -> AggregationResult:
        """Fetch from all providers and rank, without superseding checks."""
        logger.debug(
            f"Getting quotes for {request.amount} {request.sell_token} -> {request.buy_token} "
            f"on chain {request.chain_id} from {len(self.providers)} provider(s)"
        )
        results = await asyncio.gather(*(p.fetch(request) for p in self.providers))

        quotes = []
        for provider, result in zip(self.providers, results):
            if isinstance(result, Ok):
                quote = result.value
                logger.info(
                    f"Quote from {provider.name}: {quote.output_display} out, "
                    f"net ${quote.net_value_usd:.2f} (gas ${quote.gas_cost_usd:.2f})"
                )
            else:
                quote = Quote.failed(provider.name, result.error.message)
            quotes.append(quote)

        ranked = rank_quotes(request.fingerprint, quotes)
        if ranked.best_quote:
            logger.info(
                f"Got {len(quotes)} quote(s). Best: {ranked.best_quote.provider} "
                f"(net ${ranked.best_quote.net_value_usd:.2f})"
            )
        else:
            logger.error(ranked.error)
        return ranked

    async def aggregate(self, request: SwapRequest) -> Optional[AggregationResult]:
        """Aggregate for a request; returns None if it was superseded meanwhile."""
        self._generation += 1
        generation = self._generation
        self._latest_fingerprint = request.fingerprint

        result = await self.get_all_quotes(request)

        if generation != self._generation:
            logger.debug(f"Discarding superseded result set {request.fingerprint[:12]}")
            return None
        return result
