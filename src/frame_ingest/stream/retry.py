"""
Retry Policy
============

Backoff settings shared by the initial-connect and recovery paths.

Both paths wait a fixed interval after a failed open. They differ only in
whether an attempt ceiling is set: the initial connection gives up after a
bounded number of attempts, steady-state recovery retries forever.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RetryPolicy:
    """
    Fixed-interval retry policy with an optional ceiling.

    Attributes:
        backoff_seconds: Wait after a failed attempt
        settle_seconds: Wait before each attempt
        max_attempts: Attempt ceiling, None for unbounded
    """

    backoff_seconds: float
    settle_seconds: float = 0.0
    max_attempts: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.backoff_seconds < 0:
            raise ValueError("backoff_seconds must be non-negative")
        if self.settle_seconds < 0:
            raise ValueError("settle_seconds must be non-negative")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1 or None")

    def exhausted(self, failures: int) -> bool:
        """Return True if `failures` consecutive failures use up the budget."""
        return self.max_attempts is not None and failures >= self.max_attempts

    def describe(self, attempt: int) -> str:
        """Format an attempt number for log lines, e.g. ``3/10`` or ``3``."""
        if self.max_attempts is None:
            return str(attempt)
        return f"{attempt}/{self.max_attempts}"

    @classmethod
    def initial(cls, backoff_seconds: float = 3.0, max_attempts: int = 10) -> "RetryPolicy":
        """Bounded policy for the first connection."""
        return cls(backoff_seconds=backoff_seconds, max_attempts=max_attempts)

    @classmethod
    def recovery(
        cls,
        settle_seconds: float = 1.0,
        backoff_seconds: float = 2.0,
    ) -> "RetryPolicy":
        """Unbounded policy for reconnecting after a read failure."""
        return cls(
            backoff_seconds=backoff_seconds,
            settle_seconds=settle_seconds,
            max_attempts=None,
        )
