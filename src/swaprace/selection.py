"""Tracks which quote is active as result sets are replaced."""

import logging
from typing import Optional

from swaprace.models import AggregationResult, Quote, SwapRequest

logger = logging.getLogger(__name__)


class SelectionManager:
    """Sticky provider selection.

    With no pin the best quote is selected. A pinned provider stays
    selected across refreshes while it keeps returning a usable quote;
    otherwise the best quote is used for that result set. Changing the
    traded pair or sell amount clears the pin.
    """

    def __init__(self):
        self._pinned: Optional[str] = None
        self._request: Optional[SwapRequest] = None
        self._result: Optional[AggregationResult] = None
        self._selected: Optional[Quote] = None

    @property
    def pinned_provider(self) -> Optional[str]:
        return self._pinned

    @property
    def selected_quote(self) -> Optional[Quote]:
        return self._selected

    def on_request(self, request: SwapRequest) -> None:
        """Register the request about to be aggregated."""
        if self._pinned and not request.same_trade(self._request):
            logger.info(f"Trade changed, clearing pin on {self._pinned}")
            self._pinned = None
        self._request = request

    def apply(self, result: AggregationResult) -> Optional[Quote]:
        """Select the active quote from a new result set."""
        self._result = result
        selected = None
        if self._pinned:
            pinned = result.find(self._pinned)
            if pinned is not None and pinned.is_available:
                selected = pinned
            else:
                logger.info(f"Pinned provider {self._pinned} unavailable, falling back to best")
        self._selected = selected or result.best_quote
        return self._selected

    def pin(self, provider: str) -> bool:
        """Pin a provider; rejected if it has no usable quote in the current set."""
        if self._result is None:
            return False
        quote = self._result.find(provider)
        if quote is None or not quote.is_available:
            logger.debug(f"Ignoring pin on unavailable provider {provider}")
            return False
        self._pinned = provider
        self._selected = quote
        return True

    def clear_pin(self) -> None:
        self._pinned = None
        if self._result is not None:
            self._selected = self._result.best_quote

    def reset(self) -> None:
        """Forget everything; an emptied amount is a trade change."""
        if self._pinned:
            logger.info(f"Trade cleared, clearing pin on {self._pinned}")
        self._pinned = None
        self._request = None
        self._result = None
        self._selected = None
