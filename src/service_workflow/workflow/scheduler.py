# src/service_workflow/workflow/scheduler.py

from __future__ import annotations

"""
Sync scheduler.

A small polling state machine that periodically re-pulls the authoritative task
map for the selected date:

- ACTIVE_POLL      (dashboard visible): refresh every `visible_interval` seconds
- BACKGROUND_POLL  (dashboard hidden):  refresh every `hidden_interval` seconds
- STOPPED          (view torn down):    no timers

Events:
- visibility change -> switch cadence; becoming visible also refreshes once, now
- focus             -> refresh once, cadence unchanged
- refresh_now()     -> out-of-band refresh, schedule untouched

Exactly one timer task is alive at a time; stop() cancels it and any in-flight
event-triggered refreshes.
"""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)

RefreshFn = Callable[[], Awaitable[Any]]
ErrorFn = Callable[[Exception], None]


class PollState(StrEnum):
    ACTIVE_POLL = "active_poll"
    BACKGROUND_POLL = "background_poll"
    STOPPED = "stopped"


class SyncScheduler:
    def __init__(
        self,
        refresh: RefreshFn,
        *,
        visible_interval: float = 10.0,
        hidden_interval: float = 30.0,
        on_error: ErrorFn | None = None,
    ) -> None:
        self._refresh = refresh
        self._intervals = {
            PollState.ACTIVE_POLL: max(0.01, float(visible_interval)),
            PollState.BACKGROUND_POLL: max(0.01, float(hidden_interval)),
        }
        self._on_error = on_error
        self._state = PollState.STOPPED
        self._timer: asyncio.Task[None] | None = None
        self._oneshots: set[asyncio.Task[bool]] = set()
        self.refresh_count = 0

    @property
    def state(self) -> PollState:
        return self._state

    @property
    def interval(self) -> float | None:
        return self._intervals.get(self._state)

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    # ---- lifecycle ----

    def start(self, *, visible: bool = True) -> None:
        if self._state != PollState.STOPPED:
            return
        self._state = PollState.ACTIVE_POLL if visible else PollState.BACKGROUND_POLL
        self._restart_timer()
        logger.debug("Scheduler started state=%s interval=%s", self._state, self.interval)

    def stop(self) -> None:
        """Cancel every timer. Safe to call repeatedly."""
        self._state = PollState.STOPPED
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        for t in list(self._oneshots):
            t.cancel()
        self._oneshots.clear()
        logger.debug("Scheduler stopped")

    async def aclose(self) -> None:
        timer = self._timer
        oneshots = list(self._oneshots)
        self.stop()
        for t in [timer, *oneshots]:
            if t is None:
                continue
            with contextlib.suppress(asyncio.CancelledError):
                await t

    # ---- events ----

    def on_visibility_change(self, visible: bool) -> asyncio.Task[bool] | None:
        if self._state == PollState.STOPPED:
            return None

        new_state = PollState.ACTIVE_POLL if visible else PollState.BACKGROUND_POLL
        if new_state != self._state:
            logger.debug("Scheduler %s -> %s", self._state, new_state)
            self._state = new_state
            self._restart_timer()

        if visible:
            return self._spawn_refresh("visible")
        return None

    def on_focus(self) -> asyncio.Task[bool] | None:
        if self._state == PollState.STOPPED:
            return None
        return self._spawn_refresh("focus")

    async def refresh_now(self) -> bool:
        return await self._safe_refresh("manual")

    # ---- internals ----

    def _restart_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        interval = self.interval
        if interval is None:
            self._timer = None
            return
        self._timer = asyncio.create_task(self._run(interval))

    def _spawn_refresh(self, reason: str) -> asyncio.Task[bool]:
        task = asyncio.create_task(self._safe_refresh(reason))
        self._oneshots.add(task)
        task.add_done_callback(self._oneshots.discard)
        return task

    async def _run(self, interval: float) -> None:
        """
        Polling loop for one cadence.

        To switch cadence the task is cancelled and a new one started.
        """
        while True:
            await asyncio.sleep(interval)
            await self._safe_refresh("poll")

    async def _safe_refresh(self, reason: str) -> bool:
        try:
            await self._refresh()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Refresh failed (reason=%s)", reason)
            if self._on_error is not None:
                self._on_error(e)
            return False
        self.refresh_count += 1
        logger.debug("Refresh ok (reason=%s)", reason)
        return True
