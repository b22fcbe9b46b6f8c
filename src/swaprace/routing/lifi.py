"""LI.FI quote API integration.

API docs: https://docs.li.fi/li.fi-api/li.fi-api/requesting-a-quote

Spender: `estimate.approvalAddress` of the quote response. The executable
transaction is returned under `transactionRequest`.
"""

import logging
from decimal import Decimal
from typing import Optional

from swaprace.models import ZERO_ADDRESS, Quote, SwapRequest, is_native_token
from swaprace.routing.base import QuoteProvider
from swaprace.routing.normalizer import normalize_lifi

logger = logging.getLogger(__name__)

LIFI_API = "https://li.quest/v1"


class LiFiProvider(QuoteProvider):
    """LI.FI routing provider (same-chain swaps)."""

    def __init__(self, api_key: Optional[str] = None, base_url: str = LIFI_API, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    @property
    def name(self) -> str:
        return "lifi"

    def _get_headers(self) -> dict:
        headers = {"accept": "application/json"}
        if self.api_key:
            headers["x-lifi-api-key"] = self.api_key
        return headers

    @staticmethod
    def _token_param(address: str) -> str:
        # LI.FI uses the zero address for native assets
        return ZERO_ADDRESS if is_native_token(address) else address

    async def _request_quote(self, request: SwapRequest) -> dict:
        async with self._client() as client:
            response = await client.get(
                f"{self.base_url}/quote",
                headers=self._get_headers(),
                params={
                    "fromChain": request.chain_id,
                    "toChain": request.chain_id,
                    "fromToken": self._token_param(request.sell_token),
                    "toToken": self._token_param(request.buy_token),
                    "fromAmount": request.amount,
                    "fromAddress": request.user_address or ZERO_ADDRESS,
                    "slippage": str(Decimal(str(request.slippage)) / 100),
                },
            )
        return self._raise_for_response(response, ("message", "error"))

    def normalize(self, raw: dict, request: SwapRequest) -> Quote:
        return normalize_lifi(raw, request, self.pricing, provider=self.name)
