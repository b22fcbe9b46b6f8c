"""0x swap API integration.

API docs: https://0x.org/docs/0x-swap-api/api-references/get-swap-v1-quote

Spender: the address to approve is the top-level `allowanceTarget` field
of the quote response.
"""

import logging
from decimal import Decimal
from typing import Optional

from swaprace.models import Quote, SwapRequest, is_native_token
from swaprace.routing.base import QuoteProvider
from swaprace.routing.normalizer import normalize_zeroex

logger = logging.getLogger(__name__)

ZEROEX_API = "https://api.0x.org"

# 0x serves each chain from its own host
CHAIN_HOSTS = {
    1: "https://api.0x.org",
    10: "https://optimism.api.0x.org",
    56: "https://bsc.api.0x.org",
    137: "https://polygon.api.0x.org",
    8453: "https://base.api.0x.org",
    42161: "https://arbitrum.api.0x.org",
    43114: "https://avalanche.api.0x.org",
}


class ZeroExProvider(QuoteProvider):
    """0x aggregator provider."""

    def __init__(self, api_key: Optional[str] = None, base_url: str = ZEROEX_API, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    @property
    def name(self) -> str:
        return "0x"

    def supports_chain(self, chain_id: int) -> bool:
        return chain_id in CHAIN_HOSTS

    def _host(self, chain_id: int) -> str:
        if chain_id == 1:
            return self.base_url
        return CHAIN_HOSTS[chain_id]

    @staticmethod
    def _token_param(address: str) -> str:
        # 0x expects the symbol for the native asset
        return "ETH" if is_native_token(address) else address

    def _get_headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["0x-api-key"] = self.api_key
        return headers

    async def _request_quote(self, request: SwapRequest) -> dict:
        params = {
            "sellToken": self._token_param(request.sell_token),
            "buyToken": self._token_param(request.buy_token),
            "sellAmount": request.amount,
            "slippagePercentage": str(Decimal(str(request.slippage)) / 100),
            "skipValidation": "true",
        }
        # 0x rejects the zero address as taker
        if request.has_user:
            params["takerAddress"] = request.user_address

        async with self._client() as client:
            response = await client.get(
                f"{self._host(request.chain_id)}/swap/v1/quote",
                headers=self._get_headers(),
                params=params,
            )
        return self._raise_for_response(response, ("reason", "message"))

    def normalize(self, raw: dict, request: SwapRequest) -> Quote:
        return normalize_zeroex(raw, request, self.pricing, provider=self.name)
