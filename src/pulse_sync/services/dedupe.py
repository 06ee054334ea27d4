"""Read-time deduplication across record logs."""

from collections.abc import Iterable

from pulse_sync.domain.models import Record


def _dominance_key(record: Record) -> tuple[int, float]:
    updated = record.updated_at.timestamp() if record.updated_at is not None else float("-inf")
    return (-record.view_count, -updated)


def dedupe(records: Iterable[Record]) -> list[Record]:
    """Collapse records sharing ``(video_id, day_key)`` to the dominant one.

    Records are ordered by ``view_count`` descending, ties broken by the most
    recent ``updated_at``; the first record seen per key is kept. The result
    keeps that order.

    This is a safety net for queries that union several logs (automatic
    collection, manual classification, ...). It does not replace merging on
    write.
    """
    seen: set[tuple[str, str]] = set()
    kept: list[Record] = []
    for record in sorted(records, key=_dominance_key):
        if record.key in seen:
            continue
        seen.add(record.key)
        kept.append(record)
    return kept
