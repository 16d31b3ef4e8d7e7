"""Deadline-bearing call context passed into every syncer operation."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SyncContext:
    """Carries the caller's deadline (``time.monotonic()`` based) down to the client."""

    deadline: Optional[float] = None

    @classmethod
    def with_timeout(cls, seconds: Optional[float]) -> "SyncContext":
        if seconds is None:
            return cls()
        return cls(deadline=time.monotonic() + seconds)

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when unbounded."""
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def expired(self) -> bool:
        left = self.remaining()
        return left is not None and left <= 0


BACKGROUND = SyncContext()
