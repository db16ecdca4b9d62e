"""Task Runner Interface

Launches background work keyed by an identifier. Callers do not wait
for completion; progress is observed through persisted state.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable


class TaskRunner(ABC):

    @abstractmethod
    def submit(
        self,
        key: str,
        coroutine_factory: Callable[[], Awaitable[Any]],
        run_again_if_busy: bool = False,
    ) -> bool:
        """
        Start `coroutine_factory()` in the background

        With run_again_if_busy, a refused submit is remembered and the
        factory runs once more as soon as the task holding the key ends.
        Several refused submits for one key collapse into a single rerun.

        Returns:
            False if a task with the same key is still running (nothing started now)
        """
        pass

    @abstractmethod
    def is_running(self, key: str) -> bool:
        pass
