"""Token and chain registry.

Lists are fetched from LI.FI and memoized through an explicit
`RegistryCache` that callers own and can invalidate.
"""

import asyncio
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Callable, Optional

import httpx

from swaprace.models import Chain, Token

logger = logging.getLogger(__name__)

LIFI_API = "https://li.quest/v1"


class RegistryCache:
    """Get-or-fetch cache keyed by string.

    Concurrent misses on the same key share one fetch. Empty results are
    not stored, so a failed fetch is retried on the next access.
    """

    def __init__(self):
        self._entries: dict[str, Any] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[Any]:
        return self._entries.get(key)

    async def get_or_fetch(self, key: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        if key in self._entries:
            return self._entries[key]

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            if key in self._entries:
                return self._entries[key]
            value = await fetch()
            if value:
                self._entries[key] = value
            return value

    def invalidate(self, key: Optional[str] = None) -> None:
        """Drop one entry, or everything when no key is given."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)


def _price(value: Any) -> Optional[Decimal]:
    if value in (None, ""):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def parse_token(data: dict) -> Token:
    return Token(
        symbol=data.get("symbol", ""),
        address=data.get("address", ""),
        decimals=int(data.get("decimals", 18)),
        name=data.get("name", ""),
        logo_uri=data.get("logoURI"),
        price_usd=_price(data.get("priceUSD")),
    )


def token_sort_key(token: Token) -> tuple:
    """Native asset first, then USDC, then priced tokens."""
    return (
        0 if token.is_native else 1,
        0 if token.symbol == "USDC" else 1,
        0 if token.price_usd else 1,
    )


class LiFiRegistry:
    """Chain and token lists from the LI.FI API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = LIFI_API,
        cache: Optional[RegistryCache] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.cache = cache if cache is not None else RegistryCache()
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict:
        headers = {"accept": "application/json"}
        if self.api_key:
            headers["x-lifi-api-key"] = self.api_key
        return headers

    async def _get(self, path: str, params: Optional[dict] = None) -> dict:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(f"{self.base_url}{path}", params=params, headers=self._headers())
        response.raise_for_status()
        return response.json()

    async def list_chains(self) -> list[Chain]:
        return await self.cache.get_or_fetch("chains", self._fetch_chains)

    async def list_tokens(self, chain_id: int) -> list[Token]:
        return await self.cache.get_or_fetch(
            f"tokens:{chain_id}", lambda: self._fetch_tokens(chain_id)
        )

    async def find_token(self, chain_id: int, symbol_or_address: str) -> Optional[Token]:
        """Look up a token by symbol (case-insensitive) or address."""
        needle = symbol_or_address.lower()
        for token in await self.list_tokens(chain_id):
            if token.address.lower() == needle or token.symbol.lower() == needle:
                return token
        return None

    async def _fetch_chains(self) -> list[Chain]:
        try:
            data = await self._get("/chains")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Chain fetch error: {e}")
            return []

        chains = []
        for item in data.get("chains") or []:
            try:
                native = item.get("nativeToken") or {}
                chains.append(
                    Chain(
                        id=int(item["id"]),
                        name=item.get("name", str(item["id"])),
                        native_token=parse_token(native),
                        logo_uri=item.get("logoURI"),
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.debug(f"Skipping malformed chain entry: {e}")
        logger.info(f"Fetched {len(chains)} chains from LI.FI")
        return chains

    async def _fetch_tokens(self, chain_id: int) -> list[Token]:
        try:
            data = await self._get("/tokens", params={"chains": chain_id})
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Token fetch error for chain {chain_id}: {e}")
            return []

        raw = (data.get("tokens") or {}).get(str(chain_id)) or []
        tokens = []
        for item in raw:
            try:
                tokens.append(parse_token(item))
            except (TypeError, ValueError) as e:
                logger.debug(f"Skipping malformed token entry: {e}")

        tokens.sort(key=token_sort_key)
        logger.info(f"Fetched {len(tokens)} tokens for chain {chain_id} from LI.FI")
        return tokens
