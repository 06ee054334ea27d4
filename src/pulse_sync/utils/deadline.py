"""Caller-supplied deadlines for batch operations."""

import time
from dataclasses import dataclass

from pulse_sync.domain.errors import DeadlineExceeded


@dataclass(frozen=True)
class Deadline:
    """A point on the monotonic clock after which a batch must give up."""

    expires_at: float

    @classmethod
    def from_timeout(cls, seconds: float | None) -> "Deadline | None":
        """Build a deadline ``seconds`` from now; ``None`` means no deadline."""
        if seconds is None:
            return None
        return cls(expires_at=time.monotonic() + seconds)

    def remaining(self) -> float:
        return max(self.expires_at - time.monotonic(), 0.0)

    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def check(self, operation: str = "batch") -> None:
        """Raise ``DeadlineExceeded`` once the deadline has passed."""
        if self.expired():
            raise DeadlineExceeded(f"{operation} exceeded its deadline")

    def capped(self, seconds: float) -> "Deadline":
        """This deadline, or one ``seconds`` from now if that comes first."""
        return min(self, Deadline.from_timeout(seconds), key=lambda d: d.expires_at)
