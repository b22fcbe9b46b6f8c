"""1inch DEX aggregator integration.

API docs: https://portal.1inch.dev/documentation/apis/swap/introduction

Spender: 1inch swaps are executed by its router, which is the `tx.to`
address of the swap response; that is the address to approve.
"""

import logging
from typing import Optional

from swaprace.models import NATIVE_TOKEN_ADDRESS, ZERO_ADDRESS, Quote, SwapRequest, is_native_token
from swaprace.routing.base import QuoteProvider
from swaprace.routing.normalizer import normalize_oneinch

logger = logging.getLogger(__name__)

ONEINCH_API = "https://api.1inch.dev"

SUPPORTED_CHAINS = {1, 10, 56, 100, 137, 250, 8453, 42161, 43114}


class OneInchProvider(QuoteProvider):
    """1inch aggregation protocol provider."""

    def __init__(self, api_key: Optional[str] = None, base_url: str = ONEINCH_API, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    @property
    def name(self) -> str:
        return "1inch"

    def supports_chain(self, chain_id: int) -> bool:
        return chain_id in SUPPORTED_CHAINS

    def _get_headers(self) -> dict:
        """Get API headers with authorization."""
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    @staticmethod
    def _token_param(address: str) -> str:
        return NATIVE_TOKEN_ADDRESS if is_native_token(address) else address

    async def _request_quote(self, request: SwapRequest) -> dict:
        async with self._client() as client:
            response = await client.get(
                f"{self.base_url}/swap/v6.0/{request.chain_id}/swap",
                headers=self._get_headers(),
                params={
                    "src": self._token_param(request.sell_token),
                    "dst": self._token_param(request.buy_token),
                    "amount": request.amount,
                    # 1inch requires a sender even for price discovery
                    "from": request.user_address or ZERO_ADDRESS,
                    "slippage": str(request.slippage),
                    "disableEstimate": "true",
                },
            )
        return self._raise_for_response(response, ("description", "error", "message"))

    def normalize(self, raw: dict, request: SwapRequest) -> Quote:
        return normalize_oneinch(raw, request, self.pricing, provider=self.name)
