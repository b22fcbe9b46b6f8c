"""Abstract quote provider interface."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from swaprace.errors import Err, Ok, ProviderError, Result
from swaprace.models import Quote, SwapRequest
from swaprace.routing.normalizer import PricingContext

logger = logging.getLogger(__name__)


class QuoteProvider(ABC):
    """Wraps one external quote API behind a uniform contract.

    Subclasses implement `_request_quote` (the network call, returning the
    raw payload) and `normalize` (raw payload to Quote). Failures of either
    are reported as an error quote, never raised to the aggregator.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        pricing: Optional[PricingContext] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize provider.

        Args:
            timeout: Upper bound for one quote call in seconds
            pricing: Prices used to express quotes in USD
            transport: Optional httpx transport (used by tests)
        """
        self.timeout = timeout
        self.pricing = pricing or PricingContext()
        self._transport = transport

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier."""
        pass

    @abstractmethod
    async def _request_quote(self, request: SwapRequest) -> dict:
        """Call the provider and return its raw payload.

        Raises:
            ProviderError: on non-success status or error payload
        """
        pass

    @abstractmethod
    def normalize(self, raw: dict, request: SwapRequest) -> Quote:
        """Convert a raw payload to a Quote."""
        pass

    def supports_chain(self, chain_id: int) -> bool:
        return True

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def fetch(self, request: SwapRequest) -> Result:
        """Fetch and normalize a quote, as Ok(Quote) or Err(ProviderError)."""
        if not self.supports_chain(request.chain_id):
            return Err(ProviderError(self.name, f"{self.name} does not support chain {request.chain_id}"))

        try:
            raw = await asyncio.wait_for(self._request_quote(request), timeout=self.timeout)
            return Ok(self.normalize(raw, request))
        except asyncio.TimeoutError:
            logger.warning(f"{self.name} quote timed out after {self.timeout}s")
            return Err(ProviderError(self.name, f"{self.name} timed out"))
        except ProviderError as e:
            logger.warning(f"{self.name} quote failed: {e.message}")
            return Err(e)
        except httpx.HTTPError as e:
            logger.warning(f"{self.name} connection failed: {type(e).__name__}: {e}")
            return Err(ProviderError(self.name, "Connection failed"))
        except Exception as e:
            logger.warning(f"{self.name} quote failed: {type(e).__name__}: {e}")
            return Err(ProviderError(self.name, str(e) or type(e).__name__))

    async def fetch_quote(self, request: SwapRequest) -> Quote:
        """Fetch a quote; failures come back as an error quote."""
        result = await self.fetch(request)
        if isinstance(result, Ok):
            return result.value
        return Quote.failed(self.name, result.error.message)

    def _raise_for_response(self, response: httpx.Response, error_keys: tuple[str, ...]) -> dict:
        """Return the JSON body, or raise ProviderError with a best-effort message."""
        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code != 200:
            message = None
            if isinstance(data, dict):
                for key in error_keys:
                    if data.get(key):
                        message = str(data[key])
                        break
            raise ProviderError(self.name, message or f"HTTP {response.status_code}")

        if not isinstance(data, dict):
            raise ProviderError(self.name, f"{self.name} returned a malformed body")
        return data
