"""Swap execution state machine.

Drives one swap attempt through:

    idle -> checkingNetwork -> approving -> swapping -> success -> idle

`approving` is skipped for native sell tokens and when the existing
allowance already covers the amount. Every failure passes through
`failed` and the machine is back in `idle` before `execute` returns.
"""

import asyncio
import logging
import secrets
from dataclasses import dataclass, field
from typing import Callable, Optional

from swaprace.errors import (
    ApprovalFailedError,
    GasEstimationFailure,
    NetworkMismatchError,
    NetworkSwitchOutcome,
    NoQuoteError,
    SwapInProgressError,
    SwapRaceError,
    TransactionConstructionError,
    TransactionRevertedError,
    UserRejectedError,
    WalletNotAuthorizedError,
    WalletNotConnectedError,
    classify_error,
)
from swaprace.models import Quote, SwapRequest, SwapStatus, TxRequest
from swaprace.routing.normalizer import parse_int
from swaprace.wallet.base import ChainSwitchResult, WalletSession

logger = logging.getLogger(__name__)

StatusListener = Callable[[SwapStatus], None]


@dataclass
class SwapResult:
    """Result of one swap attempt."""

    success: bool
    status: SwapStatus
    tx_hash: Optional[str] = None
    approval_tx_hash: Optional[str] = None
    gas_limit: Optional[int] = None
    error: Optional[SwapRaceError] = None
    warnings: list[str] = field(default_factory=list)
    simulated: bool = False

    @property
    def message(self) -> Optional[str]:
        return self.error.message if self.error else None


def build_transaction(quote: Quote, request: SwapRequest) -> TxRequest:
    """Build the executable transaction from a quote's payload.

    Raises:
        TransactionConstructionError: destination or call data missing
    """
    tx = quote.tx or {}
    to = tx.get("to")
    data = tx.get("data")
    if not to:
        raise TransactionConstructionError(f"{quote.provider} quote has no destination address")
    if not data or data == "0x":
        raise TransactionConstructionError(f"{quote.provider} quote has no call data")

    value = parse_int(tx.get("value"), 0)
    if value is None:
        raise TransactionConstructionError(f"{quote.provider} quote has an invalid value")
    return TxRequest(to=to, data=data, value=value, chain_id=request.chain_id)


class SwapExecutor:
    """Executes the selected quote through a wallet session."""

    def __init__(
        self,
        gas_margin_percent: int = 10,
        fallback_gas_limit: int = 500_000,
        simulated_step_seconds: float = 1.0,
    ):
        self.gas_margin_percent = gas_margin_percent
        self.fallback_gas_limit = fallback_gas_limit
        self.simulated_step_seconds = simulated_step_seconds
        self._status = SwapStatus.IDLE
        self._listeners: list[StatusListener] = []

    @property
    def status(self) -> SwapStatus:
        return self._status

    @property
    def is_busy(self) -> bool:
        return self._status != SwapStatus.IDLE

    def add_listener(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    def _set_status(self, status: SwapStatus) -> None:
        if status == self._status:
            return
        logger.info(f"Swap status: {self._status.value} -> {status.value}")
        self._status = status
        for listener in self._listeners:
            listener(status)

    def _reject(self, error: SwapRaceError) -> SwapResult:
        logger.warning(f"Swap rejected: {error.message}")
        return SwapResult(success=False, status=self._status, error=error)

    async def execute(
        self,
        request: SwapRequest,
        quote: Optional[Quote],
        wallet: Optional[WalletSession],
        simulated: bool = False,
    ) -> SwapResult:
        """Run one swap attempt.

        Precondition failures are returned without any state transition.
        """
        if self.is_busy:
            return SwapResult(success=False, status=self._status, error=SwapInProgressError())

        if simulated:
            return await self._execute_simulated(request)

        if wallet is None:
            return self._reject(WalletNotConnectedError())
        if quote is None or not quote.is_available:
            return self._reject(NoQuoteError())
        if not wallet.can_sign:
            return self._reject(WalletNotAuthorizedError())

        outcome = SwapResult(success=False, status=SwapStatus.IDLE)
        try:
            await self._run(request, quote, wallet, outcome)
            outcome.success = True
            outcome.status = SwapStatus.SUCCESS
        except NetworkMismatchError as e:
            outcome.error = e
            if e.outcome == NetworkSwitchOutcome.SWITCHED:
                logger.info("Network switched; swap must be confirmed again")
            else:
                logger.warning(f"Swap failed: {e.message}")
                self._set_status(SwapStatus.FAILED)
                outcome.status = SwapStatus.FAILED
        except Exception as e:
            error = classify_error(e)
            logger.error(f"Swap failed during {self._status.value}: {error.message}")
            outcome.error = error
            self._set_status(SwapStatus.FAILED)
            outcome.status = SwapStatus.FAILED
        finally:
            self._set_status(SwapStatus.IDLE)

        return outcome

    async def _run(
        self,
        request: SwapRequest,
        quote: Quote,
        wallet: WalletSession,
        outcome: SwapResult,
    ) -> None:
        self._set_status(SwapStatus.CHECKING_NETWORK)
        account = await wallet.get_account()
        if not account:
            raise WalletNotConnectedError()
        await self._check_network(request, wallet)

        if not request.sells_native:
            outcome.approval_tx_hash = await self._ensure_allowance(request, quote, wallet, account)

        self._set_status(SwapStatus.SWAPPING)
        tx = build_transaction(quote, request)
        gas_limit = await self._gas_limit(tx, wallet, outcome)
        tx = tx.with_gas(gas_limit)
        outcome.gas_limit = gas_limit

        logger.info(f"Sending {quote.provider} swap to {tx.to} (gas {gas_limit})")
        tx_hash = await wallet.send_transaction(tx)
        outcome.tx_hash = tx_hash

        receipt = await wallet.wait_for_confirmation(tx_hash)
        if not receipt.succeeded:
            raise TransactionRevertedError(f"Transaction {tx_hash} reverted")

        logger.info(f"Swap confirmed: {tx_hash}")
        self._set_status(SwapStatus.SUCCESS)

    async def _check_network(self, request: SwapRequest, wallet: WalletSession) -> None:
        wallet_chain = await wallet.get_chain_id()
        if wallet_chain == request.chain_id:
            return

        logger.info(f"Wallet on chain {wallet_chain}, swap needs {request.chain_id}; requesting switch")
        try:
            result = await wallet.request_chain_switch(request.chain_id)
        except Exception as e:
            result = (
                ChainSwitchResult.REJECTED
                if isinstance(classify_error(e), UserRejectedError)
                else ChainSwitchResult.UNSUPPORTED
            )

        outcome = {
            ChainSwitchResult.OK: NetworkSwitchOutcome.SWITCHED,
            ChainSwitchResult.REJECTED: NetworkSwitchOutcome.REJECTED,
        }.get(result, NetworkSwitchOutcome.UNSUPPORTED)
        raise NetworkMismatchError(outcome, wallet_chain, request.chain_id)

    async def _ensure_allowance(
        self,
        request: SwapRequest,
        quote: Quote,
        wallet: WalletSession,
        account: str,
    ) -> Optional[str]:
        """Approve the quote's spender if needed; returns the approval tx hash."""
        if not quote.spender:
            raise TransactionConstructionError(f"{quote.provider} quote has no spender address")

        amount = request.amount_int or 0
        allowance = await wallet.read_allowance(request.sell_token, account, quote.spender)
        if allowance >= amount:
            logger.info(f"Token already approved: allowance={allowance}")
            return None

        self._set_status(SwapStatus.APPROVING)
        try:
            tx_hash = await wallet.send_approval(request.sell_token, quote.spender, amount)
            receipt = await wallet.wait_for_confirmation(tx_hash)
        except Exception as e:
            raise ApprovalFailedError(f"Approval failed: {classify_error(e).message}") from e
        if not receipt.succeeded:
            raise ApprovalFailedError(f"Approval {tx_hash} reverted")

        logger.info(f"Approval confirmed: {tx_hash}")
        return tx_hash

    async def _gas_limit(self, tx: TxRequest, wallet: WalletSession, outcome: SwapResult) -> int:
        """Estimated gas plus margin, or the fallback limit if estimation fails."""
        try:
            estimate = await wallet.estimate_gas(tx)
        except Exception as e:
            warning = GasEstimationFailure(
                f"Gas estimation failed ({e}); using {self.fallback_gas_limit}"
            ).message
            logger.warning(warning)
            outcome.warnings.append(warning)
            return self.fallback_gas_limit
        return estimate * (100 + self.gas_margin_percent) // 100

    async def _execute_simulated(self, request: SwapRequest) -> SwapResult:
        """Walk the state sequence with fixed delays, without any wallet."""
        phases = [SwapStatus.CHECKING_NETWORK]
        if not request.sells_native:
            phases.append(SwapStatus.APPROVING)
        phases.append(SwapStatus.SWAPPING)

        try:
            for phase in phases:
                self._set_status(phase)
                await asyncio.sleep(self.simulated_step_seconds)
            self._set_status(SwapStatus.SUCCESS)
        finally:
            self._set_status(SwapStatus.IDLE)

        tx_hash = "0x" + secrets.token_hex(32)
        logger.info(f"Simulated swap complete: {tx_hash}")
        return SwapResult(success=True, status=SwapStatus.SUCCESS, tx_hash=tx_hash, simulated=True)
