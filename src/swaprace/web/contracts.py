"""Request and response contracts for the HTTP API."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from swaprace.models import NATIVE_TOKEN_ADDRESS, ZERO_ADDRESS, Quote, SwapRequest, Token


class TokenModel(BaseModel):
    """Token as sent by a client."""

    symbol: str = Field(..., description="Token symbol")
    address: str = Field(..., description=f"Token address ({NATIVE_TOKEN_ADDRESS} for native)")
    decimals: int = Field(..., ge=0, le=36, description="Decimal precision")
    name: str = Field(default="", description="Display name")

    def to_token(self) -> Token:
        return Token(symbol=self.symbol, address=self.address, decimals=self.decimals, name=self.name)

    @classmethod
    def from_token(cls, token: Token) -> "TokenModel":
        return cls(symbol=token.symbol, address=token.address, decimals=token.decimals, name=token.name)


class QuoteRequest(BaseModel):
    """One-shot quote request in smallest units."""

    sell_token: str = Field(..., description="Sell token address")
    buy_token: str = Field(..., description="Buy token address")
    amount: str = Field(..., description="Sell amount in smallest units")
    chain_id: int = Field(default=1, description="Chain id")
    user_address: str = Field(default=ZERO_ADDRESS, description="Taker address")
    slippage: Decimal = Field(default=Decimal("1"), ge=0, le=50, description="Slippage in percent")
    buy_token_decimals: int = Field(default=18, ge=0, le=36, description="Buy token decimals")

    def to_swap_request(self) -> SwapRequest:
        return SwapRequest(
            sell_token=self.sell_token,
            buy_token=self.buy_token,
            amount=self.amount,
            chain_id=self.chain_id,
            user_address=self.user_address or ZERO_ADDRESS,
            slippage=self.slippage,
            buy_token_decimals=self.buy_token_decimals,
        )


class QuoteModel(BaseModel):
    """A normalized quote."""

    provider: str
    output_amount: str
    output_decimals: int
    gas_estimate: int
    gas_cost_usd: str
    output_usd: str
    net_value_usd: str
    spender: Optional[str] = None
    is_best: bool = False
    error: Optional[str] = None

    @classmethod
    def from_quote(cls, quote: Quote) -> "QuoteModel":
        return cls(**quote.to_dict())


class QuotesResponse(BaseModel):
    """Ranked quotes for one request."""

    success: bool
    quotes: list[QuoteModel] = Field(default_factory=list)
    best_quote: Optional[QuoteModel] = None
    error: Optional[str] = None


class SetRequestBody(BaseModel):
    """Partial update of the engine's trade input; omitted fields are kept."""

    sell_token: Optional[TokenModel] = None
    buy_token: Optional[TokenModel] = None
    sell_amount: Optional[str] = Field(None, description="Human-readable sell amount")
    user_address: Optional[str] = None
    chain_id: Optional[int] = None
    slippage: Optional[Decimal] = Field(None, ge=0, le=50)

    def changes(self) -> dict:
        changes = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, TokenModel):
                value = value.to_token()
            changes[name] = value
        return changes


class PinRequest(BaseModel):
    provider: str = Field(..., description="Provider to pin")


class AutoRefreshRequest(BaseModel):
    enabled: bool


class SwapResponse(BaseModel):
    """Outcome of a swap attempt."""

    success: bool
    status: str
    tx_hash: Optional[str] = None
    approval_tx_hash: Optional[str] = None
    error: Optional[str] = None
    warnings: list[str] = Field(default_factory=list)
    simulated: bool = False


class StateResponse(BaseModel):
    """Engine state snapshot."""

    request: Optional[dict] = None
    quotes: list[QuoteModel] = Field(default_factory=list)
    best_quote: Optional[QuoteModel] = None
    selected_quote: Optional[QuoteModel] = None
    pinned_provider: Optional[str] = None
    is_loading: bool = False
    error: Optional[str] = None
    swap_status: str = "idle"
    swap_error: Optional[str] = None
    time_left: int = 0
    auto_refresh: bool = True
    last_tx_hash: Optional[str] = None


class ChainModel(BaseModel):
    id: int
    name: str
    native_token: TokenModel
    logo_uri: Optional[str] = None


class ChainListResponse(BaseModel):
    success: bool
    chains: list[ChainModel] = Field(default_factory=list)


class TokenListResponse(BaseModel):
    success: bool
    chain_id: int
    tokens: list[TokenModel] = Field(default_factory=list)
