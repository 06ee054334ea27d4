"""Results of talking to a remote reconciliation server."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class PushOutcome:
    """Result of a chunked push.

    ``pending`` holds every item of the chunks the server never acknowledged;
    the producer keeps them and pushes them again later.
    """

    acknowledged: int = 0
    reports: list[dict[str, Any]] = field(default_factory=list)
    pending: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return not self.pending


@dataclass
class PullResult:
    """Raw wire records changed since a point in time."""

    records: list[dict[str, Any]]
    sync_time: datetime
