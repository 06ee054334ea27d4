"""Field-level merge policy.

When an incoming record collides with a stored one on ``(video_id, day_key)``
each field is resolved by the rule ``MERGE_POLICY`` assigns to it. The table
is the single definition of conflict resolution: ``merge_records`` applies it
in Python and the SQL store compiles the same table into its
``ON CONFLICT DO UPDATE`` clause.

Every rule is idempotent, so merging the same batch twice leaves the store
exactly as merging it once. Counters and classification also commute, so
concurrent producers converge regardless of arrival order.
"""

from dataclasses import replace
from typing import Any

from pulse_sync.domain.enums import STATUS_RANK, MergeRule
from pulse_sync.domain.models import Record

MERGE_POLICY: dict[str, MergeRule] = {
    # Cumulative counters: a lower value is a stale read, never a decrease.
    "view_count": MergeRule.MONOTONIC_MAX,
    "like_count": MergeRule.MONOTONIC_MAX,
    "comment_count": MergeRule.MONOTONIC_MAX,
    # Latest observation of the day.
    "collection_date": MergeRule.MONOTONIC_MAX,
    # Freshest metadata wins.
    "title": MergeRule.OVERWRITE,
    "description": MergeRule.OVERWRITE,
    "thumbnail_url": MergeRule.OVERWRITE,
    "channel_name": MergeRule.OVERWRITE,
    # Classification is sticky against downgrades and is never cleared.
    "status": MergeRule.CLASSIFICATION,
    "category": MergeRule.CLASSIFICATION,
    "sub_category": MergeRule.CLASSIFICATION,
    # Provenance.
    "collection_type": MergeRule.PREFER_INCOMING,
    "keyword": MergeRule.PREFER_INCOMING,
    "source": MergeRule.PREFER_INCOMING,
    "channel_id": MergeRule.PREFER_INCOMING,
    # Publish date never changes once known.
    "upload_date": MergeRule.KEEP_EXISTING,
}

CLASSIFICATION_FIELDS: tuple[str, ...] = tuple(
    name for name, rule in MERGE_POLICY.items() if rule is MergeRule.CLASSIFICATION
)


def classification_applies(existing: Record, incoming: Record) -> bool:
    """Whether the incoming classification group may replace the stored one.

    A record is never downgraded: ``unclassified`` cannot overwrite
    ``pending`` or ``classified``, and ``pending`` cannot overwrite
    ``classified``. Within an applicable group a missing ``category`` or
    ``sub_category`` keeps the stored value, so a classification can be
    corrected but not cleared.
    """
    return STATUS_RANK[incoming.status] >= STATUS_RANK[existing.status]


def _max(a: Any, b: Any) -> Any:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


def merge_records(existing: Record, incoming: Record) -> Record:
    """Resolve a key collision field by field.

    Bookkeeping (``id``, ``created_at``, ``updated_at``, ``version``) is
    carried over from ``existing``; the store stamps it on write.
    """
    take_classification = classification_applies(existing, incoming)
    changes: dict[str, Any] = {}
    for name, rule in MERGE_POLICY.items():
        old = getattr(existing, name)
        new = getattr(incoming, name)
        if rule is MergeRule.MONOTONIC_MAX:
            changes[name] = _max(old, new)
        elif rule is MergeRule.OVERWRITE:
            changes[name] = new
        elif rule is MergeRule.CLASSIFICATION:
            changes[name] = new if take_classification and new is not None else old
        elif rule is MergeRule.PREFER_INCOMING:
            changes[name] = new if new is not None else old
        elif rule is MergeRule.KEEP_EXISTING:
            changes[name] = old if old is not None else new
    return replace(existing, **changes)
