"""Rate Limiter Interface

Injected per dispatcher process so tests can supply deterministic
limiters.
"""

from abc import ABC, abstractmethod


class RateLimiter(ABC):

    @abstractmethod
    def try_acquire(self, tokens: int = 1) -> bool:
        """
        Take tokens without waiting

        Returns:
            True if granted, False if the limit is exhausted
        """
        pass
