"""Server-side wallet session over JSON-RPC.

Signs locally with eth-account and talks to the chain through plain
JSON-RPC calls. Switching network means selecting another configured RPC
endpoint; chains without an endpoint are unsupported.
"""

import asyncio
import logging
from typing import Any, Optional

import httpx
from eth_account import Account
from web3 import Web3

from swaprace.errors import SwapExecutionError
from swaprace.models import TxRequest
from swaprace.wallet.base import ChainSwitchResult, TxReceipt, WalletSession

logger = logging.getLogger(__name__)

ERC20_APPROVE_SELECTOR = "0x095ea7b3"  # approve(address,uint256)
ERC20_ALLOWANCE_SELECTOR = "0xdd62ed3e"  # allowance(address,address)

APPROVAL_GAS_LIMIT = 100_000


class JsonRpcError(Exception):
    """Error object returned by a JSON-RPC node."""

    def __init__(self, code: Optional[int], message: str, data: Any = None):
        self.code = code
        self.data = data
        super().__init__(message)


def _pad_address(address: str) -> str:
    return address.lower().replace("0x", "").zfill(64)


def encode_approve(spender: str, amount: int) -> str:
    return f"{ERC20_APPROVE_SELECTOR}{_pad_address(spender)}{hex(amount)[2:].zfill(64)}"


def encode_allowance(owner: str, spender: str) -> str:
    return f"{ERC20_ALLOWANCE_SELECTOR}{_pad_address(owner)}{_pad_address(spender)}"


class RpcWalletSession(WalletSession):
    """Wallet session backed by a local private key."""

    def __init__(
        self,
        private_key: str,
        rpc_urls: dict[int, str],
        chain_id: int = 1,
        timeout: float = 15.0,
        confirmation_timeout: float = 120.0,
        poll_interval: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._account = Account.from_key(private_key)
        self.rpc_urls = dict(rpc_urls)
        self.chain_id = chain_id
        self.timeout = timeout
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval
        self._transport = transport
        self._request_id = 0

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def rpc_url(self) -> str:
        return self.rpc_urls.get(self.chain_id, "")

    async def _rpc(self, method: str, params: list) -> Any:
        """Call a JSON-RPC method on the current chain's endpoint."""
        if not self.rpc_url:
            raise SwapExecutionError(f"No RPC endpoint configured for chain {self.chain_id}")

        self._request_id += 1
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(
                self.rpc_url,
                json={"jsonrpc": "2.0", "method": method, "params": params, "id": self._request_id},
            )
        response.raise_for_status()
        data = response.json()

        if data.get("error"):
            error = data["error"]
            raise JsonRpcError(error.get("code"), error.get("message", "RPC error"), error.get("data"))
        return data.get("result")

    async def get_account(self) -> Optional[str]:
        return self.address

    async def get_chain_id(self) -> Optional[int]:
        return self.chain_id

    async def request_chain_switch(self, chain_id: int) -> ChainSwitchResult:
        if chain_id not in self.rpc_urls:
            logger.warning(f"No RPC endpoint for chain {chain_id}")
            return ChainSwitchResult.UNSUPPORTED
        logger.info(f"Switching wallet session from chain {self.chain_id} to {chain_id}")
        self.chain_id = chain_id
        return ChainSwitchResult.OK

    def _call_object(self, tx: TxRequest) -> dict:
        return {
            "from": self.address,
            "to": Web3.to_checksum_address(tx.to),
            "data": tx.data,
            "value": hex(tx.value),
        }

    async def estimate_gas(self, tx: TxRequest) -> int:
        result = await self._rpc("eth_estimateGas", [self._call_object(tx)])
        return int(result, 16)

    async def send_transaction(self, tx: TxRequest) -> str:
        nonce = int(await self._rpc("eth_getTransactionCount", [self.address, "pending"]), 16)
        gas_price = int(await self._rpc("eth_gasPrice", []), 16)

        signed = self._account.sign_transaction(
            {
                "nonce": nonce,
                "gasPrice": gas_price,
                "gas": tx.gas or APPROVAL_GAS_LIMIT,
                "to": Web3.to_checksum_address(tx.to),
                "value": tx.value,
                "data": tx.data,
                "chainId": self.chain_id,
            }
        )
        raw_tx = signed.raw_transaction.hex()
        if not raw_tx.startswith("0x"):
            raw_tx = f"0x{raw_tx}"

        tx_hash = await self._rpc("eth_sendRawTransaction", [raw_tx])
        logger.info(f"Broadcast tx {tx_hash} on chain {self.chain_id}")
        return tx_hash

    async def wait_for_confirmation(self, tx_hash: str) -> TxReceipt:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.confirmation_timeout

        while True:
            result = await self._rpc("eth_getTransactionReceipt", [tx_hash])
            if result is not None:
                return TxReceipt(
                    tx_hash=tx_hash,
                    status=int(result.get("status", "0x0"), 16),
                    block_number=int(result["blockNumber"], 16) if result.get("blockNumber") else None,
                    gas_used=int(result["gasUsed"], 16) if result.get("gasUsed") else None,
                )
            if loop.time() >= deadline:
                raise SwapExecutionError(f"Timed out waiting for confirmation of {tx_hash}")
            await asyncio.sleep(self.poll_interval)

    async def read_allowance(self, token: str, owner: str, spender: str) -> int:
        result = await self._rpc(
            "eth_call",
            [{"to": Web3.to_checksum_address(token), "data": encode_allowance(owner, spender)}, "latest"],
        )
        if not result or result == "0x":
            return 0
        return int(result, 16)

    async def send_approval(self, token: str, spender: str, amount: int) -> str:
        logger.info(f"Approving {spender} to spend {amount} of {token}")
        return await self.send_transaction(
            TxRequest(
                to=token,
                data=encode_approve(spender, amount),
                value=0,
                gas=APPROVAL_GAS_LIMIT,
                chain_id=self.chain_id,
            )
        )
