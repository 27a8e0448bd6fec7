"""Polling refresh for views that have no push channel.

All state here is touched from the event loop only. The blocking fetch runs
in a worker thread; its result is applied back on the loop, and only while
the view is still mounted.
"""
from __future__ import annotations
import asyncio
import time
from typing import Any, Callable, Optional

from complaintdesk import config
from complaintdesk.errors import ComplaintDeskError
from complaintdesk.utils.logger import ServiceLogger
from complaintdesk.utils.metrics import MetricsCollector

logger = ServiceLogger("sync")
metrics = MetricsCollector("sync")


class SyncScheduler:
    """Fetch-and-apply on mount, then every ``interval`` seconds until unmount.

    A timer tick is skipped while the previous scheduled cycle is still
    outstanding. ``refresh_now`` is not subject to that rule: whichever
    response settles last is what the view shows.
    """

    def __init__(self, fetch: Callable[[], Any], apply: Callable[[Any], None],
                 interval: Optional[float] = config.REFRESH_INTERVAL, name: str = "view",
                 metrics_collector: Optional[MetricsCollector] = None,
                 log: Optional[ServiceLogger] = None):
        self.fetch = fetch
        self.apply = apply
        self.interval = interval
        self.name = name
        self.metrics = metrics_collector or metrics
        self.log = log or logger
        self.last_error: Optional[str] = None

        self._mounted = False
        self._outstanding = 0
        self._timer: Optional[asyncio.Task] = None
        self._scheduled: Optional[asyncio.Task] = None

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def refreshing(self) -> bool:
        return self._outstanding > 0

    async def mount(self) -> None:
        """Run the first cycle and start the timer."""
        if self._mounted:
            return
        self._mounted = True
        self.log.debug(f"{self.name} mounted")

        self._scheduled = asyncio.create_task(self._cycle(raise_errors=False))
        if self.interval:
            self._timer = asyncio.create_task(self._tick_loop())
        await self._scheduled

    async def unmount(self) -> None:
        """Stop the timer. Cycles still in flight complete but are discarded."""
        if not self._mounted:
            return
        self._mounted = False
        if self._timer is not None:
            self._timer.cancel()
            try:
                await self._timer
            except asyncio.CancelledError:
                pass
            self._timer = None
        self.log.debug(f"{self.name} unmounted")

    async def refresh_now(self) -> None:
        """Manual refresh; raises the failure after recording it on the view."""
        await self._cycle(raise_errors=True)

    async def _tick_loop(self) -> None:
        while self._mounted:
            await asyncio.sleep(self.interval)
            if self._scheduled is not None and not self._scheduled.done():
                self.metrics.increment("refresh_skipped")
                self.log.debug(f"{self.name}: previous cycle still outstanding, skipping tick")
                continue
            self._scheduled = asyncio.create_task(self._cycle(raise_errors=False))

    async def _cycle(self, raise_errors: bool) -> bool:
        self._outstanding += 1
        start_time = time.time()
        try:
            data = await asyncio.to_thread(self.fetch)
        except ComplaintDeskError as e:
            self.metrics.increment("refresh_failures")
            self.log.warning(f"{self.name} refresh failed: {e.message}", view=self.name)
            if self._mounted:
                self.last_error = e.message
            if raise_errors:
                raise
            return False
        finally:
            self._outstanding -= 1
            self.metrics.timing("fetch_ms", (time.time() - start_time) * 1000)

        if not self._mounted:
            self.log.debug(f"{self.name}: discarding response after unmount")
            return False

        # apply may record a partial failure of its own
        self.last_error = None
        self.apply(data)
        self.metrics.increment("refresh_cycles")
        return True
