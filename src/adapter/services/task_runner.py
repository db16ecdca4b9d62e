"""Task Runner Implementation

Runs dispatch loops as asyncio tasks on the running event loop.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional
from src.app.services.task_runner import TaskRunner

logger = logging.getLogger(__name__)

CoroutineFactory = Callable[[], Awaitable[Any]]


class AsyncioTaskRunner(TaskRunner):
    """
    Fire-and-forget asyncio tasks keyed by identifier

    Holds a reference to each task until it finishes (the event loop only
    keeps weak references) and logs anything the task raises. A submit
    refused with run_again_if_busy is started from the done callback of
    the task that blocked it.
    """

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}
        self._reruns: Dict[str, CoroutineFactory] = {}
        self._closing = False

    def submit(
        self,
        key: str,
        coroutine_factory: CoroutineFactory,
        run_again_if_busy: bool = False,
    ) -> bool:
        if self.is_running(key):
            if run_again_if_busy and not self._closing:
                self._reruns[key] = coroutine_factory
                logger.info(f"Task {key} is busy; it will run again when the current run ends")
            return False

        self._start(key, coroutine_factory)
        return True

    def is_running(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    def _start(self, key: str, coroutine_factory: CoroutineFactory) -> None:
        task = asyncio.ensure_future(coroutine_factory())
        self._tasks[key] = task
        task.add_done_callback(lambda finished: self._on_done(key, finished))

    def _on_done(self, key: str, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]

        if task.cancelled():
            logger.warning(f"Task {key} was cancelled")
        else:
            error = task.exception()
            if error is not None:
                logger.error(f"Task {key} crashed: {error}", exc_info=error)

        rerun = self._reruns.pop(key, None)
        if rerun is not None and not self._closing and not self.is_running(key):
            logger.info(f"Running task {key} again")
            self._start(key, rerun)

    async def shutdown(self, timeout: Optional[float] = 10.0) -> None:
        """Wait for in-flight tasks, cancelling whatever is left after `timeout` (None waits indefinitely)"""
        self._closing = True
        self._reruns.clear()

        pending = [task for task in self._tasks.values() if not task.done()]
        if not pending:
            return

        logger.info(f"Waiting for {len(pending)} background task(s)")
        done, still_pending = await asyncio.wait(pending, timeout=timeout)
        for task in still_pending:
            task.cancel()
        if still_pending:
            await asyncio.gather(*still_pending, return_exceptions=True)
