"""Quote and swap engine facade.

Owns the current request, the latest result set, the selection and the
swap executor, and exposes them to a UI layer as one observable state.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Optional

import httpx

from swaprace.config import Settings, get_settings
from swaprace.errors import NoQuoteError, WalletNotConnectedError
from swaprace.models import (
    ZERO_ADDRESS,
    AggregationResult,
    Quote,
    SwapRequest,
    SwapStatus,
    Token,
    to_base_units,
)
from swaprace.routing.aggregator import QuoteAggregator
from swaprace.routing.factory import create_aggregator
from swaprace.scheduler import RefreshScheduler
from swaprace.selection import SelectionManager
from swaprace.swap.executor import SwapExecutor, SwapResult
from swaprace.wallet.base import WalletSession

logger = logging.getLogger(__name__)

INPUT_FIELDS = ("sell_token", "buy_token", "sell_amount", "user_address", "chain_id", "slippage")


@dataclass(frozen=True)
class EngineState:
    """Snapshot of everything a UI renders."""

    request: Optional[SwapRequest] = None
    quotes: tuple[Quote, ...] = ()
    best_quote: Optional[Quote] = None
    selected_quote: Optional[Quote] = None
    pinned_provider: Optional[str] = None
    is_loading: bool = False
    error: Optional[str] = None
    swap_status: SwapStatus = SwapStatus.IDLE
    swap_error: Optional[str] = None
    time_left: int = 0
    auto_refresh: bool = True
    last_tx_hash: Optional[str] = None
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "request": self.request.to_body() if self.request else None,
            "quotes": [q.to_dict() for q in self.quotes],
            "best_quote": self.best_quote.to_dict() if self.best_quote else None,
            "selected_quote": self.selected_quote.to_dict() if self.selected_quote else None,
            "pinned_provider": self.pinned_provider,
            "is_loading": self.is_loading,
            "error": self.error,
            "swap_status": self.swap_status.value,
            "swap_error": self.swap_error,
            "time_left": self.time_left,
            "auto_refresh": self.auto_refresh,
            "last_tx_hash": self.last_tx_hash,
        }


StateListener = Callable[[EngineState], None]


class SwapEngine:
    """Coordinates aggregation, selection, refresh and execution.

    Usage:
        engine = SwapEngine.from_settings(settings)
        engine.set_request(sell_token=eth, buy_token=usdc, sell_amount="1.0")
        ...
        result = await engine.execute_swap()
    """

    def __init__(
        self,
        aggregator: QuoteAggregator,
        wallet: Optional[WalletSession] = None,
        executor: Optional[SwapExecutor] = None,
        simulated: bool = False,
        debounce_seconds: float = 0.6,
        refresh_interval_seconds: float = 15.0,
        default_chain_id: int = 1,
        default_slippage: Decimal = Decimal("1"),
    ):
        self.aggregator = aggregator
        self.wallet = wallet
        self.executor = executor or SwapExecutor()
        self.simulated = simulated
        self.selection = SelectionManager()
        self.scheduler = RefreshScheduler(
            self._refresh,
            debounce_seconds=debounce_seconds,
            interval_seconds=refresh_interval_seconds,
        )

        self._input: dict = {
            "sell_token": None,
            "buy_token": None,
            "sell_amount": "",
            "user_address": None,
            "chain_id": default_chain_id,
            "slippage": default_slippage,
        }
        self._request: Optional[SwapRequest] = None
        self._result: Optional[AggregationResult] = None
        self._is_loading = False
        self._error: Optional[str] = None
        self._swap_error: Optional[str] = None
        self._last_tx_hash: Optional[str] = None
        self._warnings: tuple[str, ...] = ()
        self._listeners: list[StateListener] = []

        self.executor.add_listener(lambda status: self._notify())

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        wallet: Optional[WalletSession] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "SwapEngine":
        """Build an engine with providers, executor and wallet from settings."""
        settings = settings or get_settings()

        if wallet is None and settings.has_wallet and not settings.simulated_mode:
            from swaprace.wallet.rpc import RpcWalletSession

            wallet = RpcWalletSession(
                private_key=settings.wallet_private_key,
                rpc_urls=settings.rpc_urls,
                chain_id=settings.chain_id,
                confirmation_timeout=settings.confirmation_timeout_seconds,
                transport=transport,
            )

        return cls(
            aggregator=create_aggregator(settings, transport),
            wallet=wallet,
            executor=SwapExecutor(
                gas_margin_percent=settings.gas_margin_percent,
                fallback_gas_limit=settings.fallback_gas_limit,
                simulated_step_seconds=settings.simulated_step_seconds,
            ),
            simulated=settings.simulated_mode,
            debounce_seconds=settings.debounce_seconds,
            refresh_interval_seconds=settings.refresh_interval_seconds,
            default_chain_id=settings.chain_id,
            default_slippage=Decimal(str(settings.default_slippage_percent)),
        )

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def request(self) -> Optional[SwapRequest]:
        return self._request

    @property
    def state(self) -> EngineState:
        result = self._result
        return EngineState(
            request=self._request,
            quotes=result.quotes if result else (),
            best_quote=result.best_quote if result else None,
            selected_quote=self.selection.selected_quote,
            pinned_provider=self.selection.pinned_provider,
            is_loading=self._is_loading,
            error=self._error,
            swap_status=self.executor.status,
            swap_error=self._swap_error,
            time_left=self.scheduler.time_left,
            auto_refresh=self.scheduler.auto_refresh,
            last_tx_hash=self._last_tx_hash,
            warnings=self._warnings,
        )

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        state = self.state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("State listener failed")

    # ------------------------------------------------------------------
    # Request input
    # ------------------------------------------------------------------

    def set_request(self, **changes) -> Optional[SwapRequest]:
        """Merge partial input and schedule a debounced aggregation.

        Accepted fields: sell_token, buy_token (Token), sell_amount
        (human-readable string), user_address, chain_id, slippage.
        An incomplete trade or a zero/unparsable amount clears the quotes
        without issuing any provider call.
        """
        unknown = set(changes) - set(INPUT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown request fields: {', '.join(sorted(unknown))}")
        self._input.update(changes)

        request = self._build_request()
        if request is None:
            self._clear()
            return None

        if self._request is not None and request.fingerprint == self._request.fingerprint:
            return request

        # Results for the previous request must not land after this point
        self.aggregator.supersede()
        self.selection.on_request(request)
        self._request = request
        self.scheduler.schedule(request)
        self._notify()
        return request

    def _build_request(self) -> Optional[SwapRequest]:
        sell: Optional[Token] = self._input["sell_token"]
        buy: Optional[Token] = self._input["buy_token"]
        if sell is None or buy is None:
            return None

        amount = to_base_units(self._input["sell_amount"] or "", sell.decimals)
        if amount is None:
            return None

        return SwapRequest(
            sell_token=sell.address,
            buy_token=buy.address,
            amount=str(amount),
            chain_id=int(self._input["chain_id"]),
            user_address=self._input["user_address"] or ZERO_ADDRESS,
            slippage=Decimal(str(self._input["slippage"])),
            buy_token_decimals=buy.decimals,
        )

    def _clear(self) -> None:
        """Reset to empty quotes with no error and no pending work."""
        self.aggregator.supersede()
        self.scheduler.cancel()
        self.selection.reset()
        self._request = None
        self._result = None
        self._is_loading = False
        self._error = None
        self._notify()

    async def _refresh(self, request: SwapRequest) -> bool:
        """Aggregate `request` and apply the result unless superseded."""
        self._is_loading = True
        self._notify()

        result = await self.aggregator.aggregate(request)
        if result is None:
            return self._result is not None

        self._result = result
        self.selection.apply(result)
        self._error = result.error
        self._is_loading = False
        self._notify()
        return True

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def pin(self, provider: str) -> bool:
        """Pin a provider's quote; no-op for unknown or failed quotes."""
        pinned = self.selection.pin(provider)
        if pinned:
            logger.info(f"Pinned provider {provider}")
            self._notify()
        return pinned

    def clear_pin(self) -> None:
        self.selection.clear_pin()
        self._notify()

    def toggle_auto_refresh(self, enabled: bool) -> None:
        self.scheduler.set_auto_refresh(enabled)
        self._notify()

    def refresh(self) -> None:
        """Re-fetch the current request immediately."""
        self.scheduler.refresh_now()

    async def wait_until_idle(self) -> None:
        """Wait for a pending debounce and every in-flight aggregation."""
        await self.scheduler.wait_until_idle()

    async def execute_swap(self) -> SwapResult:
        """Execute the selected quote.

        Only a quote from the current request's result set is executed;
        while a replaced request is being re-quoted there is no quote.
        A successful swap triggers an immediate re-aggregation.
        """
        request = self._request
        quote = self._current_quote()
        if request is None or (quote is None and self.simulated):
            error = (
                WalletNotConnectedError()
                if self.wallet is None and not self.simulated
                else NoQuoteError()
            )
            logger.warning(f"Swap rejected: {error.message}")
            result = SwapResult(success=False, status=self.executor.status, error=error)
        else:
            result = await self.executor.execute(request, quote, self.wallet, simulated=self.simulated)

        self._swap_error = result.message
        self._warnings = tuple(result.warnings)
        if result.success:
            self._last_tx_hash = result.tx_hash
            self.scheduler.refresh_now()
        self._notify()
        return result

    def _current_quote(self) -> Optional[Quote]:
        request, result = self._request, self._result
        if request is None or result is None or result.fingerprint != request.fingerprint:
            return None
        return self.selection.selected_quote

    async def close(self) -> None:
        """Stop timers and drop in-flight work."""
        self.aggregator.supersede()
        await self.scheduler.close()
        self._listeners.clear()
