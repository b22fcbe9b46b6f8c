"""Wallet sessions."""

from swaprace.wallet.base import ChainSwitchResult, TxReceipt, WalletSession
from swaprace.wallet.rpc import JsonRpcError, RpcWalletSession

__all__ = [
    "ChainSwitchResult",
    "TxReceipt",
    "WalletSession",
    "JsonRpcError",
    "RpcWalletSession",
]
