"""Remote sync adapters."""

from pulse_sync.adapters.remote.base import PullResult, PushOutcome
from pulse_sync.adapters.remote.http import RemoteRequestError, RemoteSyncClient

__all__ = [
    "PullResult",
    "PushOutcome",
    "RemoteRequestError",
    "RemoteSyncClient",
]
