"""HTTP client for the sync API, used by disconnected producers."""

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Sequence
from datetime import datetime
from typing import Any

import httpx

from pulse_sync.adapters.remote.base import PullResult, PushOutcome
from pulse_sync.config import settings
from pulse_sync.domain.models import Record
from pulse_sync.logging import get_logger

logger = get_logger(__name__)


class RemoteRequestError(Exception):
    """A request failed after all retries, or was rejected by the server."""


def _wire(item: Record | dict[str, Any]) -> dict[str, Any]:
    return item.to_dict() if isinstance(item, Record) else dict(item)


def _chunks(items: Sequence[dict[str, Any]], size: int) -> Iterable[list[dict[str, Any]]]:
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


class RemoteSyncClient:
    """Async client for ``/sync`` endpoints with chunked, retried pushes.

    Network errors and 5xx responses are retried with exponential backoff
    (``base_delay * 2**attempt``, capped at ``max_delay``). 4xx responses are
    not retried.
    """

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        chunk_size: int | None = None,
        max_retries: int | None = None,
        base_delay: float | None = None,
        max_delay: float | None = None,
        timeout: float | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.base_url = (base_url or settings.remote_base_url).rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=timeout or settings.sync_default_timeout_seconds)
        self.chunk_size = chunk_size or settings.sync_push_chunk_size
        self.max_retries = settings.sync_max_retries if max_retries is None else max_retries
        self.base_delay = settings.sync_retry_base_delay if base_delay is None else base_delay
        self.max_delay = settings.sync_retry_max_delay if max_delay is None else max_delay
        self._sleep = sleep

    async def __aenter__(self) -> "RemoteSyncClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.aclose()

    def _delay(self, attempt: int) -> float:
        return min(self.base_delay * (2**attempt), self.max_delay)

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        last_error = ""
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.request(method, url, **kwargs)
                if response.status_code < 500:
                    response.raise_for_status()
                    return response.json()
                last_error = f"server error {response.status_code}"
            except httpx.HTTPStatusError as e:
                raise RemoteRequestError(
                    f"{method} {path} rejected: {e.response.status_code} {e.response.text}"
                ) from e
            except httpx.RequestError as e:
                last_error = str(e) or type(e).__name__

            if attempt < self.max_retries:
                delay = self._delay(attempt)
                logger.warning(
                    "remote_request_retry",
                    method=method,
                    path=path,
                    attempt=attempt + 1,
                    delay=delay,
                    error=last_error,
                )
                await self._sleep(delay)

        raise RemoteRequestError(f"{method} {path} failed after {self.max_retries + 1} attempts: {last_error}")

    async def push(self, records: Iterable[Record | dict[str, Any]]) -> PushOutcome:
        """Push local changes chunk by chunk.

        Stops at the first chunk that cannot be delivered; that chunk and all
        later ones are returned in ``pending``.
        """
        items = [_wire(record) for record in records]
        outcome = PushOutcome()
        chunks = list(_chunks(items, self.chunk_size))
        for position, chunk in enumerate(chunks):
            try:
                report = await self._request("POST", "/sync/push", json={"records": chunk})
            except RemoteRequestError as e:
                outcome.error = str(e)
                outcome.pending = [item for rest in chunks[position:] for item in rest]
                logger.error(
                    "remote_push_failed",
                    chunk=position,
                    pending=len(outcome.pending),
                    error=outcome.error,
                )
                break
            outcome.acknowledged += len(chunk)
            outcome.reports.append(report)

        logger.info("remote_push_completed", acknowledged=outcome.acknowledged, pending=len(outcome.pending))
        return outcome

    async def pull(self, since: datetime | None = None) -> PullResult:
        params = {"since": since.isoformat()} if since is not None else {}
        data = await self._request("GET", "/sync/pull", params=params)
        return PullResult(
            records=list(data.get("records", [])),
            sync_time=datetime.fromisoformat(data["syncTime"]),
        )

    async def has_changes(self, since: datetime | None = None) -> bool:
        params = {"since": since.isoformat()} if since is not None else {}
        data = await self._request("GET", "/sync/has-changes", params=params)
        return bool(data.get("hasChanges"))
