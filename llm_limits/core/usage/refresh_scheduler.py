from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

from llm_limits.core.config.store import ConfigStore, read_store_settings, resolve_update_frequency

logger = logging.getLogger(__name__)

SECONDS_PER_MINUTE = 60.0
DEFAULT_STOP_TIMEOUT_SECONDS = 30.0


class PassRunner(Protocol):
    async def run_pass(self) -> object: ...


class SchedulerState(StrEnum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    RUNNING = "running"


@dataclass(slots=True)
class UsageRefreshScheduler:
    """Re-runs aggregation passes on a fixed cadence, one pass at a time.

    ``start`` fires an immediate pass and then one every ``interval_minutes``
    measured from the end of the previous pass. ``request_refresh`` and
    ``reconfigure`` wake the loop early; requests that arrive while a pass is
    running collapse into a single follow-up pass.
    """

    runner: PassRunner
    interval_minutes: int = 5
    minute_seconds: float = SECONDS_PER_MINUTE
    _state: SchedulerState = SchedulerState.IDLE
    _task: asyncio.Task[None] | None = None
    _wake: asyncio.Event = field(default_factory=asyncio.Event)
    _stop: asyncio.Event = field(default_factory=asyncio.Event)
    _follow_up: bool = False

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def interval_seconds(self) -> float:
        return self.interval_minutes * self.minute_seconds

    async def start(self, interval_minutes: int | None = None) -> None:
        if self._task and not self._task.done():
            return
        if interval_minutes is not None:
            self.interval_minutes = resolve_update_frequency(interval_minutes)
        self._stop.clear()
        self._wake.clear()
        self._follow_up = False
        self._state = SchedulerState.SCHEDULED
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Usage refresh scheduler started interval_minutes=%d", self.interval_minutes)

    async def stop(self, *, timeout_seconds: float = DEFAULT_STOP_TIMEOUT_SECONDS) -> None:
        if not self._task:
            return
        self._stop.set()
        self._wake.set()
        task = self._task
        # Let an in-flight pass finish; only cancel if it overruns the timeout.
        done, _ = await asyncio.wait({task}, timeout=timeout_seconds)
        if not done:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._task = None
        self._state = SchedulerState.IDLE
        logger.info("Usage refresh scheduler stopped")

    def request_refresh(self) -> None:
        if self._state is SchedulerState.IDLE:
            return
        if self._state is SchedulerState.RUNNING:
            self._follow_up = True
            return
        self._wake.set()

    def reconfigure(self, interval_minutes: object) -> None:
        self.interval_minutes = resolve_update_frequency(interval_minutes)
        logger.info("Usage refresh interval changed interval_minutes=%d", self.interval_minutes)
        self.request_refresh()

    async def _run_loop(self) -> None:
        while not self._stop.is_set():
            self._state = SchedulerState.RUNNING
            self._follow_up = False
            self._wake.clear()
            await self._refresh_once()
            if self._stop.is_set():
                break
            self._state = SchedulerState.SCHEDULED
            if self._follow_up:
                continue
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue

    async def _refresh_once(self) -> None:
        try:
            await self.runner.run_pass()
        except Exception:
            logger.exception("Usage refresh pass failed")


def build_usage_refresh_scheduler(runner: PassRunner, store: ConfigStore) -> UsageRefreshScheduler:
    interval = read_store_settings(store).update_frequency
    return UsageRefreshScheduler(runner=runner, interval_minutes=interval)
