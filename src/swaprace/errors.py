"""Error taxonomy and tagged results for the quote and swap engine."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E", bound=Exception)


class SwapRaceError(Exception):
    """Base class for all engine errors."""

    message = "Swap failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)


class ProviderError(SwapRaceError):
    """A single provider failed to return a usable quote."""

    message = "Provider request failed"

    def __init__(self, provider: str, message: Optional[str] = None):
        self.provider = provider
        super().__init__(message)


class AggregateNoRouteError(SwapRaceError):
    message = "No route found"


class WalletNotConnectedError(SwapRaceError):
    message = "Connect wallet"


class WalletNotAuthorizedError(SwapRaceError):
    message = "Reconnect wallet"


class NoQuoteError(SwapRaceError):
    message = "No quote available"


class SwapInProgressError(SwapRaceError):
    message = "A swap is already in progress"


class NetworkSwitchOutcome(str, Enum):
    SWITCHED = "switched"
    REJECTED = "rejected"
    UNSUPPORTED = "unsupported"


class NetworkMismatchError(SwapRaceError):
    """Wallet is on the wrong chain.

    Raised for every outcome of the switch request, including success:
    the swap must be re-invoked on the new chain.
    """

    MESSAGES = {
        NetworkSwitchOutcome.SWITCHED: "Network switched, confirm the swap again",
        NetworkSwitchOutcome.REJECTED: "Network switch rejected",
        NetworkSwitchOutcome.UNSUPPORTED: "Manual switch required",
    }

    def __init__(
        self,
        outcome: NetworkSwitchOutcome,
        wallet_chain_id: Optional[int] = None,
        target_chain_id: Optional[int] = None,
    ):
        self.outcome = outcome
        self.wallet_chain_id = wallet_chain_id
        self.target_chain_id = target_chain_id
        super().__init__(self.MESSAGES[outcome])


class ApprovalFailedError(SwapRaceError):
    message = "Approval failed"


class TransactionConstructionError(SwapRaceError):
    message = "Malformed provider transaction"


class GasEstimationFailure(SwapRaceError):
    """Non-fatal: execution continues with the fallback gas limit."""

    message = "Gas estimation failed"


class TransactionRevertedError(SwapRaceError):
    message = "Transaction reverted"


class UserRejectedError(SwapRaceError):
    message = "Transaction rejected in wallet"


class SwapExecutionError(SwapRaceError):
    message = "Swap failed"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    @property
    def is_ok(self) -> bool:
        return False


Result = Union[Ok[T], Err[E]]

_REJECTION_MARKERS = ("user rejected", "user denied", "rejected by user", "action_rejected")
_REVERT_MARKERS = ("revert", "execution reverted")


def classify_error(exc: BaseException) -> SwapRaceError:
    """Map wallet and chain exceptions onto the engine taxonomy."""
    if isinstance(exc, SwapRaceError):
        return exc

    code: Any = getattr(exc, "code", None)
    text = str(exc).lower()

    if code == 4001 or any(marker in text for marker in _REJECTION_MARKERS):
        return UserRejectedError()
    if any(marker in text for marker in _REVERT_MARKERS):
        return TransactionRevertedError(f"Transaction reverted: {exc}")
    return SwapExecutionError(f"Swap failed: {exc}" if str(exc) else None)
