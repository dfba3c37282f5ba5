"""One-shot auto-completion timers for pending orders.

Each timer is a ``loop.call_later`` handle keyed by order id. On expiry the
callback coroutine is run as a task; the owner decides whether the order is
still eligible.
"""

import asyncio
from collections.abc import Awaitable, Callable

import structlog

logger = structlog.get_logger(__name__)


class OrderWatchdog:
    def __init__(self, delay: float, on_expire: Callable[[str], Awaitable[None]]) -> None:
        self.delay = delay
        self._on_expire = on_expire
        self._handles: dict[str, asyncio.TimerHandle] = {}
        self._tasks: set[asyncio.Task] = set()

    def __contains__(self, order_id) -> bool:
        return str(order_id) in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    def start(self, order_id) -> None:
        """Start (or restart) the countdown for ``order_id``. Needs a running loop."""
        order_id = str(order_id)
        self.cancel(order_id)
        loop = asyncio.get_running_loop()
        self._handles[order_id] = loop.call_later(self.delay, self._expire, order_id)
        logger.debug("Watchdog started", order_id=order_id, delay=self.delay)

    def cancel(self, order_id) -> bool:
        handle = self._handles.pop(str(order_id), None)
        if handle is None:
            return False
        handle.cancel()
        logger.debug("Watchdog cancelled", order_id=str(order_id))
        return True

    def close(self) -> None:
        """Cancel every timer and any expiry still running."""
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        for task in self._tasks:
            task.cancel()
        self._tasks.clear()

    def _expire(self, order_id: str) -> None:
        self._handles.pop(order_id, None)
        task = asyncio.get_running_loop().create_task(self._on_expire(order_id))
        self._tasks.add(task)
        task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Watchdog expiry failed", error=str(exc), error_type=type(exc).__name__)
