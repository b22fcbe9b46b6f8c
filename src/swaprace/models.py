"""Core data model shared by the quote and execution layers."""

import hashlib
import json
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional

# Both sentinels are used by aggregators for the chain's native asset
NATIVE_TOKEN_ADDRESS = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def is_native_token(address: Optional[str]) -> bool:
    """Check whether an address is one of the native asset sentinels."""
    if not address:
        return False
    return address.lower() in (NATIVE_TOKEN_ADDRESS.lower(), ZERO_ADDRESS)


def to_base_units(amount: str, decimals: int) -> Optional[int]:
    """Convert a human-readable amount to smallest units.

    Returns None when the amount cannot be parsed or is not positive.
    """
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite() or value <= 0:
        return None
    units = int(value.scaleb(decimals))
    return units if units > 0 else None


@dataclass(frozen=True)
class Token:
    """An on-chain token."""

    symbol: str
    address: str
    decimals: int
    name: str = ""
    logo_uri: Optional[str] = None
    price_usd: Optional[Decimal] = None

    @property
    def is_native(self) -> bool:
        return is_native_token(self.address)


@dataclass(frozen=True)
class Chain:
    """A blockchain network from the chain registry."""

    id: int
    name: str
    native_token: Token
    logo_uri: Optional[str] = None


@dataclass(frozen=True)
class SwapRequest:
    """Parameters of one aggregation cycle.

    A request is never mutated; a changed trade is a new request with a
    new fingerprint.
    """

    sell_token: str
    buy_token: str
    amount: str  # smallest-unit integer string
    chain_id: int = 1
    user_address: str = ZERO_ADDRESS
    slippage: Decimal = Decimal("1")  # percent
    buy_token_decimals: int = 18

    @property
    def amount_int(self) -> Optional[int]:
        """Parsed sell amount, or None if it is not a positive integer."""
        try:
            value = int(self.amount)
        except (TypeError, ValueError):
            return None
        return value if value > 0 else None

    @property
    def is_quotable(self) -> bool:
        return self.amount_int is not None

    @property
    def has_user(self) -> bool:
        return bool(self.user_address) and self.user_address.lower() != ZERO_ADDRESS

    @property
    def sells_native(self) -> bool:
        return is_native_token(self.sell_token)

    @property
    def fingerprint(self) -> str:
        """Stable hash of every request field."""
        payload = json.dumps(
            {
                "sell_token": self.sell_token.lower(),
                "buy_token": self.buy_token.lower(),
                "amount": self.amount,
                "chain_id": self.chain_id,
                "user_address": (self.user_address or "").lower(),
                "slippage": str(self.slippage),
                "buy_token_decimals": self.buy_token_decimals,
            },
            sort_keys=True,
        )
        return hashlib.sha256(payload.encode()).hexdigest()

    def same_trade(self, other: Optional["SwapRequest"]) -> bool:
        """True if token pair and sell amount are unchanged."""
        if other is None:
            return False
        return (
            self.sell_token.lower() == other.sell_token.lower()
            and self.buy_token.lower() == other.buy_token.lower()
            and self.amount == other.amount
        )

    def to_body(self) -> dict:
        """Provider-facing request body."""
        return {
            "sellToken": self.sell_token,
            "buyToken": self.buy_token,
            "amount": self.amount,
            "userAddress": self.user_address or ZERO_ADDRESS,
            "chainId": self.chain_id,
            "slippage": float(self.slippage),
        }


@dataclass(frozen=True)
class Quote:
    """A normalized quote from one provider.

    A quote carrying an error is unavailable: it is listed but never ranked
    or selectable.
    """

    provider: str
    output_amount: int = 0
    output_decimals: int = 18
    gas_estimate: int = 0
    gas_cost_usd: Decimal = Decimal("0")
    output_usd: Decimal = Decimal("0")
    net_value_usd: Decimal = Decimal("0")
    tx: dict = field(default_factory=dict)  # to / data / value / gas as returned
    spender: Optional[str] = None
    raw: dict = field(default_factory=dict, repr=False)
    is_best: bool = False
    error: Optional[str] = None

    @classmethod
    def failed(cls, provider: str, error: str) -> "Quote":
        return cls(provider=provider, error=error or "Unknown error")

    @property
    def is_available(self) -> bool:
        return self.error is None

    @property
    def output_display(self) -> Decimal:
        """Output amount in whole-token units."""
        return Decimal(self.output_amount).scaleb(-self.output_decimals)

    def mark_best(self, is_best: bool = True) -> "Quote":
        return replace(self, is_best=is_best)

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "output_amount": str(self.output_amount),
            "output_decimals": self.output_decimals,
            "gas_estimate": self.gas_estimate,
            "gas_cost_usd": str(self.gas_cost_usd),
            "output_usd": str(self.output_usd),
            "net_value_usd": str(self.net_value_usd),
            "spender": self.spender,
            "is_best": self.is_best,
            "error": self.error,
        }


@dataclass(frozen=True)
class AggregationResult:
    """Ranked quotes for one request."""

    fingerprint: str
    quotes: tuple[Quote, ...] = ()
    best_quote: Optional[Quote] = None
    error: Optional[str] = None

    def find(self, provider: str) -> Optional[Quote]:
        for quote in self.quotes:
            if quote.provider == provider:
                return quote
        return None


class SwapStatus(str, Enum):
    """Swap execution phases."""

    IDLE = "idle"
    CHECKING_NETWORK = "checkingNetwork"
    APPROVING = "approving"
    SWAPPING = "swapping"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class TxRequest:
    """An executable transaction built from a quote payload."""

    to: str
    data: str
    value: int = 0
    gas: Optional[int] = None
    chain_id: Optional[int] = None

    def with_gas(self, gas: int) -> "TxRequest":
        return replace(self, gas=gas)

    def to_dict(self) -> dict:
        tx = {"to": self.to, "data": self.data, "value": self.value}
        if self.gas is not None:
            tx["gas"] = self.gas
        if self.chain_id is not None:
            tx["chainId"] = self.chain_id
        return tx
