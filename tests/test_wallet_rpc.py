"""Tests for the JSON-RPC wallet session."""

import json

import httpx
import pytest

from conftest import ROUTER, USDC, USER
from swaprace.errors import SwapExecutionError, UserRejectedError, classify_error
from swaprace.models import TxRequest
from swaprace.wallet.base import ChainSwitchResult
from swaprace.wallet.rpc import (
    ERC20_ALLOWANCE_SELECTOR,
    ERC20_APPROVE_SELECTOR,
    JsonRpcError,
    RpcWalletSession,
    encode_allowance,
    encode_approve,
)

PRIVATE_KEY = "0x" + "11" * 32
RPC_URLS = {1: "https://rpc.test/eth", 137: "https://rpc.test/polygon"}


class Node:
    """Minimal JSON-RPC node behind httpx.MockTransport."""

    def __init__(self, results: dict):
        self.results = results
        self.calls: list[tuple[str, str, list]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method = body["method"]
        self.calls.append((str(request.url), method, body["params"]))

        result = self.results.get(method)
        if isinstance(result, list):
            result = result.pop(0) if len(result) > 1 else result[0]
        if isinstance(result, dict) and "error" in result:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": result["error"]})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    @property
    def methods(self) -> list[str]:
        return [method for _, method, _ in self.calls]


def make_session(node: Node, chain_id: int = 1) -> RpcWalletSession:
    return RpcWalletSession(
        private_key=PRIVATE_KEY,
        rpc_urls=RPC_URLS,
        chain_id=chain_id,
        poll_interval=0,
        confirmation_timeout=1,
        transport=httpx.MockTransport(node),
    )


class TestEncoding:
    def test_encode_approve(self):
        data = encode_approve(ROUTER, 255)
        assert data.startswith(ERC20_APPROVE_SELECTOR)
        assert len(data) == 10 + 128
        assert data[10:74] == "0" * 24 + "22" * 20
        assert data[-2:] == "ff"

    def test_encode_allowance(self):
        data = encode_allowance(USER, ROUTER)
        assert data == ERC20_ALLOWANCE_SELECTOR + "0" * 24 + "11" * 20 + "0" * 24 + "22" * 20


class TestRpcWalletSession:
    """Tests for RpcWalletSession."""

    @pytest.mark.asyncio
    async def test_account_and_chain(self):
        session = make_session(Node({}))
        assert (await session.get_account()).startswith("0x")
        assert await session.get_chain_id() == 1
        assert session.can_sign

    @pytest.mark.asyncio
    async def test_read_allowance(self):
        node = Node({"eth_call": hex(5000)})
        session = make_session(node)

        assert await session.read_allowance(USDC, USER, ROUTER) == 5000
        url, method, params = node.calls[0]
        assert url == RPC_URLS[1]
        assert params[0]["data"] == encode_allowance(USER, ROUTER)
        assert params[1] == "latest"

    @pytest.mark.asyncio
    async def test_empty_allowance_is_zero(self):
        session = make_session(Node({"eth_call": "0x"}))
        assert await session.read_allowance(USDC, USER, ROUTER) == 0

    @pytest.mark.asyncio
    async def test_estimate_gas(self):
        node = Node({"eth_estimateGas": hex(123_456)})
        session = make_session(node)

        gas = await session.estimate_gas(TxRequest(to=ROUTER, data="0x12345678", value=10))
        assert gas == 123_456
        call = node.calls[0][2][0]
        assert call["value"] == "0xa"
        assert call["from"] == session.address

    @pytest.mark.asyncio
    async def test_rpc_error_raised(self):
        node = Node({"eth_estimateGas": {"error": {"code": 3, "message": "execution reverted"}}})
        session = make_session(node)

        with pytest.raises(JsonRpcError) as exc_info:
            await session.estimate_gas(TxRequest(to=ROUTER, data="0x12345678"))
        assert exc_info.value.code == 3
        assert "reverted" in classify_error(exc_info.value).message

    def test_rejection_code_classified(self):
        assert isinstance(classify_error(JsonRpcError(4001, "denied")), UserRejectedError)

    @pytest.mark.asyncio
    async def test_chain_switch(self):
        node = Node({"eth_call": "0x0"})
        session = make_session(node)

        assert await session.request_chain_switch(137) == ChainSwitchResult.OK
        assert await session.get_chain_id() == 137
        await session.read_allowance(USDC, USER, ROUTER)
        assert node.calls[-1][0] == RPC_URLS[137]

        assert await session.request_chain_switch(10) == ChainSwitchResult.UNSUPPORTED
        assert await session.get_chain_id() == 137

    @pytest.mark.asyncio
    async def test_chain_without_endpoint(self):
        session = make_session(Node({}), chain_id=10)
        with pytest.raises(SwapExecutionError):
            await session.estimate_gas(TxRequest(to=ROUTER, data="0x12345678"))

    @pytest.mark.asyncio
    async def test_send_transaction_signs_and_broadcasts(self):
        node = Node(
            {
                "eth_getTransactionCount": "0x0",
                "eth_gasPrice": hex(10**9),
                "eth_sendRawTransaction": "0x" + "ab" * 32,
            }
        )
        session = make_session(node)

        tx_hash = await session.send_transaction(
            TxRequest(to=ROUTER, data="0x12345678", value=1, gas=110_000, chain_id=1)
        )

        assert tx_hash == "0x" + "ab" * 32
        assert node.methods == ["eth_getTransactionCount", "eth_gasPrice", "eth_sendRawTransaction"]
        raw = node.calls[-1][2][0]
        assert raw.startswith("0x")
        assert len(raw) > 100

    @pytest.mark.asyncio
    async def test_send_approval_targets_token(self):
        node = Node(
            {
                "eth_getTransactionCount": "0x1",
                "eth_gasPrice": hex(10**9),
                "eth_sendRawTransaction": "0x" + "cd" * 32,
            }
        )
        session = make_session(node)

        assert await session.send_approval(USDC, ROUTER, 10**6) == "0x" + "cd" * 32

    @pytest.mark.asyncio
    async def test_wait_for_confirmation_polls(self):
        receipt = {"status": "0x1", "blockNumber": "0x10", "gasUsed": "0x5208"}
        node = Node({"eth_getTransactionReceipt": [None, None, receipt]})
        session = make_session(node)

        result = await session.wait_for_confirmation("0xabc")
        assert result.succeeded
        assert result.block_number == 16
        assert result.gas_used == 21_000
        assert node.methods.count("eth_getTransactionReceipt") == 3

    @pytest.mark.asyncio
    async def test_wait_for_confirmation_times_out(self):
        session = RpcWalletSession(
            private_key=PRIVATE_KEY,
            rpc_urls=RPC_URLS,
            poll_interval=0.01,
            confirmation_timeout=0.03,
            transport=httpx.MockTransport(Node({"eth_getTransactionReceipt": None})),
        )
        with pytest.raises(SwapExecutionError):
            await session.wait_for_confirmation("0xabc")
