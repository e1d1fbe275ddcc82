"""
Per-key debouncing on an asyncio event loop.

Each key has at most one pending call. Scheduling a key again before its
delay elapses cancels the pending call and starts the delay over, so a burst
of edits to one transaction results in a single save, while edits to
different transactions are saved independently.
"""

import asyncio
import inspect
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple
import structlog

logger = structlog.get_logger(__name__)


class KeyedDebouncer:
    """
    Debounce calls to `callback`, separately for each key.

    The callback receives the key followed by the arguments of the most
    recent schedule() call. Coroutine callbacks are run as tasks on the loop.

    Example:
        >>> debouncer = KeyedDebouncer(0.5, save)
        >>> debouncer.schedule("txn-1", "price")
        >>> debouncer.schedule("txn-1", "shares")   # replaces the pending call
        >>> # 0.5s later: save("txn-1", "shares")
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[..., Any],
        loop: Optional[asyncio.AbstractEventLoop] = None
    ):
        """
        Initialize debouncer.

        Args:
            delay: Seconds to wait after the last schedule() for a key
            callback: Called with (key, *args) once the delay elapses
            loop: Event loop to schedule on (defaults to the running loop)
        """
        if delay < 0:
            raise ValueError(f"Delay cannot be negative, got {delay}")
        self.delay = delay
        self.callback = callback
        self._loop = loop
        self._handles: Dict[Hashable, asyncio.TimerHandle] = {}
        self._args: Dict[Hashable, Tuple[Any, ...]] = {}
        self._tasks: List[asyncio.Task] = []

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def pending_keys(self) -> List[Hashable]:
        return list(self._handles)

    def pending(self, key: Hashable) -> bool:
        """Check if a call is waiting for this key."""
        return key in self._handles

    def schedule(self, key: Hashable, *args: Any) -> None:
        """
        Schedule the callback for `key`, replacing any pending call.

        Must be called from the event loop's thread.
        """
        previous = self._handles.pop(key, None)
        if previous is not None:
            previous.cancel()

        self._args[key] = args
        self._handles[key] = self.loop.call_later(self.delay, self._fire, key)
        logger.debug("debounce_scheduled", key=key, delay=self.delay, replaced=previous is not None)

    def cancel(self, key: Hashable) -> bool:
        """
        Drop the pending call for `key`.

        Returns:
            True if a call was pending
        """
        handle = self._handles.pop(key, None)
        self._args.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        logger.debug("debounce_cancelled", key=key)
        return True

    def cancel_all(self) -> int:
        """Drop every pending call; returns how many were dropped."""
        keys = list(self._handles)
        for key in keys:
            self.cancel(key)
        return len(keys)

    def flush(self, key: Hashable) -> Any:
        """
        Run the pending call for `key` immediately.

        Returns:
            The callback's result (a Task for coroutine callbacks), or None
            if nothing was pending
        """
        handle = self._handles.pop(key, None)
        if handle is None:
            return None
        handle.cancel()
        return self._invoke(key, self._args.pop(key, ()))

    async def drain(self) -> None:
        """Flush every pending call and wait for coroutine callbacks to finish."""
        for key in list(self._handles):
            self.flush(key)
        if self._tasks:
            await asyncio.gather(*self._tasks)

    def _fire(self, key: Hashable) -> None:
        self._handles.pop(key, None)
        self._invoke(key, self._args.pop(key, ()))

    def _invoke(self, key: Hashable, args: Tuple[Any, ...]) -> Any:
        logger.debug("debounce_fired", key=key)
        result = self.callback(key, *args)
        if inspect.isawaitable(result):
            task = self.loop.create_task(result)
            self._tasks.append(task)
            task.add_done_callback(self._task_done)
            return task
        return result

    def _task_done(self, task: asyncio.Task) -> None:
        if task in self._tasks:
            self._tasks.remove(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("debounced_call_failed", error=str(task.exception()))
