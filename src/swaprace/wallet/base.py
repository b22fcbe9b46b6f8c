"""Wallet session interface consumed by the swap executor."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from swaprace.models import TxRequest


class ChainSwitchResult(str, Enum):
    """Outcome of asking the wallet to change network."""

    OK = "ok"
    REJECTED = "rejected"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class TxReceipt:
    """Mined transaction receipt."""

    tx_hash: str
    status: int
    block_number: Optional[int] = None
    gas_used: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1


class WalletSession(ABC):
    """Account, network and signing capability of a connected wallet."""

    @property
    def can_sign(self) -> bool:
        """Whether the session is authorized to sign transactions."""
        return True

    @abstractmethod
    async def get_account(self) -> Optional[str]:
        pass

    @abstractmethod
    async def get_chain_id(self) -> Optional[int]:
        pass

    @abstractmethod
    async def request_chain_switch(self, chain_id: int) -> ChainSwitchResult:
        pass

    @abstractmethod
    async def estimate_gas(self, tx: TxRequest) -> int:
        pass

    @abstractmethod
    async def send_transaction(self, tx: TxRequest) -> str:
        """Sign and broadcast; returns the transaction hash."""
        pass

    @abstractmethod
    async def wait_for_confirmation(self, tx_hash: str) -> TxReceipt:
        pass

    @abstractmethod
    async def read_allowance(self, token: str, owner: str, spender: str) -> int:
        pass

    @abstractmethod
    async def send_approval(self, token: str, spender: str, amount: int) -> str:
        """Submit an ERC-20 approve; returns the transaction hash."""
        pass
