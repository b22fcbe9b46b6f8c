"""Pytest configuration and fixtures."""

import asyncio
import os
from decimal import Decimal
from typing import Callable, Optional, Union

import pytest

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"
os.environ["SIMULATED_MODE"] = "false"

from swaprace.errors import ProviderError
from swaprace.models import NATIVE_TOKEN_ADDRESS, Quote, SwapRequest, Token, TxRequest
from swaprace.routing.base import QuoteProvider
from swaprace.wallet.base import ChainSwitchResult, TxReceipt, WalletSession

USER = "0x1111111111111111111111111111111111111111"
ROUTER = "0x2222222222222222222222222222222222222222"
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"


class StaticProvider(QuoteProvider):
    """Quote provider whose net value is set by the test."""

    def __init__(
        self,
        name: str,
        net_value: Union[str, Decimal] = "0",
        latency: Union[float, Callable[[SwapRequest], float]] = 0.0,
        error: Optional[str] = None,
        spender: Optional[str] = ROUTER,
        tx: Optional[dict] = None,
        timeout: float = 5.0,
    ):
        super().__init__(timeout=timeout)
        self._name = name
        self.net_value = Decimal(str(net_value))
        self.latency = latency
        self.error = error
        self.spender = spender
        self.tx = tx if tx is not None else {"to": ROUTER, "data": "0x12345678", "value": "0"}
        self.requests: list[SwapRequest] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def _request_quote(self, request: SwapRequest) -> dict:
        self.requests.append(request)
        net_value, error = self.net_value, self.error
        delay = self.latency(request) if callable(self.latency) else self.latency
        if delay:
            await asyncio.sleep(delay)
        if error:
            raise ProviderError(self.name, error)
        return {"net": str(net_value), "amount": request.amount}

    def normalize(self, raw: dict, request: SwapRequest) -> Quote:
        net = Decimal(raw["net"])
        return Quote(
            provider=self.name,
            output_amount=int(net * 10**6),
            output_decimals=6,
            output_usd=net,
            net_value_usd=net,
            tx=dict(self.tx),
            spender=self.spender,
            raw=raw,
        )


class FakeWallet(WalletSession):
    """In-memory wallet session recording every call."""

    def __init__(
        self,
        account: Optional[str] = USER,
        chain_id: int = 1,
        allowance: int = 0,
        can_sign: bool = True,
        switch_result: Union[ChainSwitchResult, Exception] = ChainSwitchResult.OK,
        gas_estimate: Union[int, Exception] = 100_000,
        receipt_status: int = 1,
        approval_status: int = 1,
        approval_error: Optional[Exception] = None,
        send_error: Optional[Exception] = None,
    ):
        self.account = account
        self.chain_id = chain_id
        self.allowance = allowance
        self._can_sign = can_sign
        self.switch_result = switch_result
        self.gas_estimate = gas_estimate
        self.receipt_status = receipt_status
        self.approval_status = approval_status
        self.approval_error = approval_error
        self.send_error = send_error

        self.calls: list[str] = []
        self.sent: list[TxRequest] = []
        self.approvals: list[tuple[str, str, int]] = []
        self._approval_hashes: set[str] = set()

    @property
    def can_sign(self) -> bool:
        return self._can_sign

    async def get_account(self) -> Optional[str]:
        self.calls.append("get_account")
        return self.account

    async def get_chain_id(self) -> Optional[int]:
        self.calls.append("get_chain_id")
        return self.chain_id

    async def request_chain_switch(self, chain_id: int) -> ChainSwitchResult:
        self.calls.append("request_chain_switch")
        if isinstance(self.switch_result, Exception):
            raise self.switch_result
        if self.switch_result == ChainSwitchResult.OK:
            self.chain_id = chain_id
        return self.switch_result

    async def estimate_gas(self, tx: TxRequest) -> int:
        self.calls.append("estimate_gas")
        if isinstance(self.gas_estimate, Exception):
            raise self.gas_estimate
        return self.gas_estimate

    async def send_transaction(self, tx: TxRequest) -> str:
        self.calls.append("send_transaction")
        if self.send_error:
            raise self.send_error
        self.sent.append(tx)
        return f"0x{len(self.sent):064x}"

    async def wait_for_confirmation(self, tx_hash: str) -> TxReceipt:
        self.calls.append("wait_for_confirmation")
        status = self.approval_status if tx_hash in self._approval_hashes else self.receipt_status
        return TxReceipt(tx_hash=tx_hash, status=status, block_number=1, gas_used=90_000)

    async def read_allowance(self, token: str, owner: str, spender: str) -> int:
        self.calls.append("read_allowance")
        return self.allowance

    async def send_approval(self, token: str, spender: str, amount: int) -> str:
        self.calls.append("send_approval")
        if self.approval_error:
            raise self.approval_error
        self.approvals.append((token, spender, amount))
        tx_hash = f"0xa{len(self.approvals):063x}"
        self._approval_hashes.add(tx_hash)
        return tx_hash


@pytest.fixture
def eth_token() -> Token:
    return Token(symbol="ETH", address=NATIVE_TOKEN_ADDRESS, decimals=18, name="Ether")


@pytest.fixture
def usdc_token() -> Token:
    return Token(symbol="USDC", address=USDC, decimals=6, name="USD Coin")


@pytest.fixture
def eth_to_usdc() -> SwapRequest:
    """Sell 1.0 ETH for USDC."""
    return SwapRequest(
        sell_token=NATIVE_TOKEN_ADDRESS,
        buy_token=USDC,
        amount=str(10**18),
        chain_id=1,
        user_address=USER,
        buy_token_decimals=6,
    )


@pytest.fixture
def usdc_to_eth() -> SwapRequest:
    """Sell 1800 USDC for ETH."""
    return SwapRequest(
        sell_token=USDC,
        buy_token=NATIVE_TOKEN_ADDRESS,
        amount=str(1800 * 10**6),
        chain_id=1,
        user_address=USER,
        buy_token_decimals=18,
    )


@pytest.fixture
def wallet() -> FakeWallet:
    return FakeWallet()
