"""Rate limiter interfaces.

The API depends on this abstraction (not the concrete implementation) so the
storage backend can be swapped with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single admission decision.

    Attributes:
        allowed: Whether the request is admitted.
        limit: Max requests per window.
        remaining: Requests left in the window after this decision.
        reset_at: UNIX epoch seconds when the oldest counted request leaves
            the window.
        retry_after_seconds: Suggested wait in seconds when denied.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def consume(self, key: str) -> RateLimitResult:
        """Record a request for ``key`` if it is admitted.

        Args:
            key: Client identifier (e.g. source address).

        Returns:
            RateLimitResult describing the decision.
        """
        raise NotImplementedError

    def check(self, key: str) -> bool:
        """Admit or deny a request, returning only the decision."""
        return self.consume(key).allowed
