"""Utilities for reusing a background asyncio event loop.

Synchronous codepaths (the orchestrator, the CLI) use this helper to fan out
blocking work such as media file reads without spinning up a new event loop
per call. A single loop is created on demand in a dedicated thread and
shared across callers.
"""

from __future__ import annotations

import asyncio
import atexit
import threading
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

T = TypeVar("T")


class AsyncioRunner:
    """Run coroutines on a shared background event loop."""

    _instance: AsyncioRunner | None = None
    _instance_lock = threading.Lock()

    def __init__(self) -> None:
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._loop.run_forever, name="asyncio-runner", daemon=True
        )
        self._thread.start()
        atexit.register(self.stop)

    @classmethod
    def get_global(cls) -> AsyncioRunner:
        """Get or create the process-wide runner instance."""

        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def run(self, coro: Awaitable[Any]) -> Any:
        """Execute a coroutine on the background loop and wait for result."""

        future = asyncio.run_coroutine_threadsafe(coro, self._loop)  # type: ignore[arg-type]
        return future.result()

    def stop(self) -> None:
        """Shut down the background event loop."""

        if self._loop.is_running():
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout=1)


async def gather_in_threads(
    func: Callable[..., T],
    items: Iterable[Any],
    max_concurrent: int,
) -> list[T | BaseException]:
    """Call a blocking ``func`` for every item in worker threads.

    At most ``max_concurrent`` calls run at once. Results come back in item
    order; an exception raised for one item is returned in its slot.
    """
    semaphore = asyncio.Semaphore(max(1, max_concurrent))

    async def _call(item: Any) -> T:
        async with semaphore:
            return await asyncio.to_thread(func, item)

    return await asyncio.gather(
        *(_call(item) for item in items), return_exceptions=True
    )
