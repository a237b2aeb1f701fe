"""Fixed-cadence async task scheduler.

Runs a coroutine function immediately and then again ``interval_ms`` after
each invocation finishes. Invocations never overlap: the delay before the
next run starts only once the current one has returned. Each invocation is
handed its own ``asyncio.Event`` that ``ScheduleHandle.abort()`` sets, so an
in-flight request can be dropped without touching later ticks.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

Task = Callable[[asyncio.Event], Awaitable[Any]]
ErrorCallback = Callable[[BaseException], Any]


class ScheduleHandle:
    """Controls a running schedule."""

    def __init__(self, name: str):
        self.name = name
        self.runs = 0
        self._loop_task: asyncio.Task | None = None
        self._current_signal: asyncio.Event | None = None

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def abort(self) -> bool:
        """Signal the in-flight invocation to abort. Returns False if idle."""
        if self._current_signal is None or self._current_signal.is_set():
            return False
        self._current_signal.set()
        return True

    def cancel(self) -> None:
        """Stop scheduling further invocations (and abort the current one)."""
        self.abort()
        if self._loop_task is not None:
            self._loop_task.cancel()

    async def wait(self) -> None:
        if self._loop_task is not None:
            await asyncio.wait({self._loop_task})

    async def stop(self) -> None:
        self.cancel()
        await self.wait()


async def _report(on_error: ErrorCallback | None, name: str, exc: Exception) -> None:
    if on_error is None:
        logger.error("Scheduled task %s failed: %s", name, exc, exc_info=exc)
        return
    try:
        result = on_error(exc)
        if asyncio.iscoroutine(result):
            await result
    except Exception:
        logger.exception("Error handler for scheduled task %s failed", name)


async def _run(handle: ScheduleHandle, task: Task, interval: float, on_error: ErrorCallback | None) -> None:
    logger.info("Schedule %s started (every %.3fs)", handle.name, interval)
    try:
        while True:
            signal = asyncio.Event()
            handle._current_signal = signal
            try:
                await task(signal)
            except Exception as exc:
                await _report(on_error, handle.name, exc)
            finally:
                handle._current_signal = None
                handle.runs += 1
            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        logger.info("Schedule %s stopped after %d runs", handle.name, handle.runs)
        raise


def schedule(
    task: Task,
    interval_ms: float,
    on_error: ErrorCallback | None = None,
    name: str | None = None,
) -> ScheduleHandle:
    """Start running ``task`` forever on the current event loop.

    Must be called from within a running loop. A task that raises does not
    end the schedule: ``on_error`` (sync or async) receives the exception and
    the next tick goes ahead as usual.
    """
    if interval_ms <= 0:
        raise ValueError(f"interval_ms must be positive, got {interval_ms!r}")
    handle = ScheduleHandle(name or getattr(task, "__qualname__", repr(task)))
    handle._loop_task = asyncio.get_running_loop().create_task(
        _run(handle, task, interval_ms / 1000, on_error),
        name=f"schedule:{handle.name}",
    )
    return handle
