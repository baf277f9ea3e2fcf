"""Cancellable periodic background tasks.

Sweeps (idle rate-limit buckets, expired cache entries) run as asyncio tasks
owned by the application lifespan: started on startup, cancelled and awaited
on shutdown.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run an async callable every ``interval_seconds`` until stopped.

    The first run happens one interval after :meth:`start`. An exception
    raised by the callable is logged and the loop keeps going.
    """

    def __init__(
        self,
        name: str,
        func: Callable[[], Awaitable[Any]],
        interval_seconds: float,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")

        self.name = name
        self._func = func
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=f"periodic:{self.name}")
        logger.info(
            "periodic_task.started",
            extra={"task": self.name, "interval_s": self._interval},
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("periodic_task.stopped", extra={"task": self.name})

    async def run_once(self) -> Any:
        return await self._func()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._func()
            except Exception as exc:
                logger.error(
                    "periodic_task.failed",
                    extra={
                        "task": self.name,
                        "error_type": type(exc).__name__,
                        "error_msg": str(exc),
                    },
                    exc_info=True,
                )
