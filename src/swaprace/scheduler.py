"""Debounced and periodic quote refresh."""

import asyncio
import logging
import math
import time
from typing import Awaitable, Callable, Optional

from swaprace.models import SwapRequest

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[SwapRequest], Awaitable[bool]]


class RefreshScheduler:
    """Owns the current request and the two timers that re-issue it.

    - Debounce: every `schedule()` restarts a short delay; only the last
      request inside the window is fetched.
    - Periodic: once a fetch produced a result set, a countdown re-issues
      the same request when it reaches zero, then restarts.

    Timers only decide *when* to fetch. Fetches run as separate tasks, so
    cancelling or re-arming a timer never aborts an in-flight request.
    """

    def __init__(
        self,
        refresh: RefreshCallback,
        debounce_seconds: float = 0.6,
        interval_seconds: float = 15.0,
        auto_refresh: bool = True,
    ):
        """Initialize scheduler.

        Args:
            refresh: Coroutine fetching quotes for a request; returns True
                when a result set exists afterwards
            debounce_seconds: Delay after the last input change
            interval_seconds: Periodic refresh interval
            auto_refresh: Whether periodic refresh starts enabled
        """
        self._refresh = refresh
        self.debounce_seconds = debounce_seconds
        self.interval_seconds = interval_seconds
        self._auto_refresh = auto_refresh

        self._request: Optional[SwapRequest] = None
        self._debounce_task: Optional[asyncio.Task] = None
        self._periodic_task: Optional[asyncio.Task] = None
        self._deadline: Optional[float] = None
        self._inflight: set[asyncio.Task] = set()
        self._closed = False

    @property
    def request(self) -> Optional[SwapRequest]:
        return self._request

    @property
    def auto_refresh(self) -> bool:
        return self._auto_refresh

    @property
    def time_left(self) -> int:
        """Whole seconds until the next periodic refresh (0 when not armed)."""
        if self._deadline is None:
            return 0
        remaining = self._deadline - time.monotonic()
        return max(0, math.ceil(remaining))

    @property
    def is_armed(self) -> bool:
        return self._periodic_task is not None and not self._periodic_task.done()

    def _is_current(self, request: SwapRequest) -> bool:
        return self._request is not None and self._request.fingerprint == request.fingerprint

    def schedule(self, request: SwapRequest) -> None:
        """Debounced trigger: fetch `request` once input settles."""
        if self._closed:
            return
        self._request = request
        self._cancel_timer("_debounce_task")
        self._disarm()
        self._debounce_task = asyncio.create_task(self._debounced(request))

    def refresh_now(self) -> None:
        """Fetch the current request immediately."""
        if self._closed or self._request is None:
            return
        self._cancel_timer("_debounce_task")
        self._disarm()
        self._spawn(self._request)

    def set_auto_refresh(self, enabled: bool) -> None:
        """Toggle periodic refresh.

        Disabling stops future refreshes only; enabling fetches right away.
        """
        self._auto_refresh = enabled
        logger.info(f"Auto refresh {'enabled' if enabled else 'disabled'}")
        if enabled:
            self.refresh_now()
        else:
            self._disarm()

    def cancel(self) -> None:
        """Stop both timers and forget the current request."""
        self._request = None
        self._cancel_timer("_debounce_task")
        self._disarm()

    async def close(self) -> None:
        """Tear down timers and in-flight fetches."""
        self._closed = True
        self.cancel()
        tasks = list(self._inflight)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()

    async def wait_until_idle(self) -> None:
        """Wait for a pending debounce and all in-flight fetches."""
        while True:
            pending = [t for t in self._inflight if not t.done()]
            if self._debounce_task is not None and not self._debounce_task.done():
                pending.append(self._debounce_task)
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def _debounced(self, request: SwapRequest) -> None:
        await asyncio.sleep(self.debounce_seconds)
        if self._is_current(request):
            self._spawn(request)

    async def _periodic(self, request: SwapRequest) -> None:
        await asyncio.sleep(self.interval_seconds)
        # This task is finishing; do not let re-arming cancel it
        self._periodic_task = None
        self._deadline = None
        if self._auto_refresh and self._is_current(request):
            logger.debug("Periodic refresh")
            self._spawn(request)

    def _spawn(self, request: SwapRequest) -> None:
        task = asyncio.create_task(self._run(request))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _run(self, request: SwapRequest) -> None:
        try:
            has_result = await self._refresh(request)
        except Exception as e:
            logger.error(f"Quote refresh failed: {type(e).__name__}: {e}")
            return
        if has_result and self._auto_refresh and not self._closed and self._is_current(request):
            self._arm(request)

    def _arm(self, request: SwapRequest) -> None:
        self._disarm()
        self._deadline = time.monotonic() + self.interval_seconds
        self._periodic_task = asyncio.create_task(self._periodic(request))

    def _disarm(self) -> None:
        self._cancel_timer("_periodic_task")
        self._deadline = None

    def _cancel_timer(self, attr: str) -> None:
        task = getattr(self, attr)
        if task is not None and not task.done():
            task.cancel()
        setattr(self, attr, None)
