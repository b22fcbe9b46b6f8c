"""Generic JSON quote endpoint.

For routing services that accept the canonical request body by POST:
`{sellToken, buyToken, amount, userAddress, chainId, slippage}`.

Spender: each route's `spender` field.
"""

import logging
from typing import Optional

from swaprace.models import Quote, SwapRequest
from swaprace.routing.base import QuoteProvider
from swaprace.routing.normalizer import normalize_routes

logger = logging.getLogger(__name__)


class HttpQuoteProvider(QuoteProvider):
    """Provider backed by a self-hosted quote endpoint."""

    def __init__(self, name: str, url: str, api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self._name = name
        self.url = url
        self.api_key = api_key

    @property
    def name(self) -> str:
        return self._name

    async def _request_quote(self, request: SwapRequest) -> dict:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        async with self._client() as client:
            response = await client.post(self.url, headers=headers, json=request.to_body())
        return self._raise_for_response(response, ("message", "error", "reason", "description"))

    def normalize(self, raw: dict, request: SwapRequest) -> Quote:
        return normalize_routes(raw, request, self.pricing, provider=self.name)
