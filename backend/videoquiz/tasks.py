from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)

JobFactory = Callable[[], Awaitable[None]]


class ProcessingQueue:
    """Background jobs keyed by video id, at most one running per key.

    Submitting a job for a key whose previous job is still running cancels
    the previous one and starts the new job once it has unwound.
    """

    def __init__(self) -> None:
        self._tasks: Dict[str, asyncio.Task] = {}

    def submit(self, key: str, job: JobFactory) -> asyncio.Task:
        previous = self._stop(key)
        task = asyncio.get_running_loop().create_task(self._run(previous, job), name=f"process:{key}")
        self._tasks[key] = task
        task.add_done_callback(lambda done: self._finished(key, done))
        logger.info("Queued background job for %s", key)
        return task

    async def _run(self, previous: Optional[asyncio.Task], job: JobFactory) -> None:
        if previous is not None:
            await asyncio.gather(previous, return_exceptions=True)
        await job()

    def _finished(self, key: str, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
        if task.cancelled():
            logger.info("Background job for %s was cancelled", key)
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background job for %s crashed", key, exc_info=exc)
        else:
            logger.info("Background job for %s finished", key)

    def _stop(self, key: str) -> Optional[asyncio.Task]:
        task = self._tasks.pop(key, None)
        if task is None or task.done():
            return None
        task.cancel()
        return task

    def is_running(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    async def cancel(self, key: str) -> bool:
        """Cancel the job for ``key`` and wait until it has unwound."""
        task = self._stop(key)
        if task is None:
            return False
        await asyncio.gather(task, return_exceptions=True)
        return True

    async def wait(self, key: str) -> None:
        task = self._tasks.get(key)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def shutdown(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Processing queue stopped (%d jobs cancelled)", len(tasks))
