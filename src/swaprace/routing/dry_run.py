"""Simulated quote provider for demos and tests.

Quotes are derived from a fixed price ratio, so results are deterministic
and never touch the network.
"""

import asyncio
from decimal import Decimal
from typing import Optional

from swaprace.errors import ProviderError
from swaprace.models import Quote, SwapRequest
from swaprace.routing.base import QuoteProvider
from swaprace.routing.normalizer import normalize_routes

SIMULATED_ROUTER = "0x5111111111111111111111111111111111111115"


class DryRunProvider(QuoteProvider):
    """
    Simulated provider.

    Provides quotes with:
    - Configurable price ratio and fee
    - Configurable gas estimate
    - Optional latency and failure injection
    """

    def __init__(
        self,
        name: str = "dry_run",
        price_ratio: Decimal = Decimal("2500"),
        fee_percent: Decimal = Decimal("0.3"),
        gas_estimate: int = 150_000,
        sell_decimals: int = 18,
        latency_seconds: float = 0.0,
        error: Optional[str] = None,
        **kwargs,
    ):
        """Initialize simulated provider.

        Args:
            name: Provider identifier
            price_ratio: Whole buy tokens per whole sell token
            fee_percent: Fee taken from the output, in percent
            gas_estimate: Gas units reported with every quote
            sell_decimals: Decimals of the sell token
            latency_seconds: Artificial delay before answering
            error: If set, every request fails with this message
        """
        super().__init__(**kwargs)
        self._name = name
        self.price_ratio = Decimal(price_ratio)
        self.fee_percent = Decimal(fee_percent)
        self.gas_estimate = gas_estimate
        self.sell_decimals = sell_decimals
        self.latency_seconds = latency_seconds
        self.error = error
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    async def _request_quote(self, request: SwapRequest) -> dict:
        self.calls += 1
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)
        if self.error:
            raise ProviderError(self.name, self.error)

        sell_amount = Decimal(request.amount_int or 0).scaleb(-self.sell_decimals)
        gross = sell_amount * self.price_ratio * (1 - self.fee_percent / 100)
        output = int(gross.scaleb(request.buy_token_decimals))

        return {
            "outputAmount": str(output),
            "outputDecimals": request.buy_token_decimals,
            "gasEstimate": self.gas_estimate,
            "spender": SIMULATED_ROUTER,
            "tx": {
                "to": SIMULATED_ROUTER,
                "data": "0x" + "00" * 4,
                "value": request.amount if request.sells_native else "0",
                "gas": self.gas_estimate,
            },
        }

    def normalize(self, raw: dict, request: SwapRequest) -> Quote:
        return normalize_routes(raw, request, self.pricing, provider=self.name)
