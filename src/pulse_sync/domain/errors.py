"""Error taxonomy for the reconciliation engine.

Per-item errors (``RecordValidationError`` and ``MissingTimestamp``) are
recovered inside batch operations and surface as rejected items in reports.
Everything else propagates to the caller unrecovered.
"""

from pulse_sync.domain.enums import RejectionReason


class ReconciliationError(Exception):
    """Base class for all engine errors."""


class RecordValidationError(ReconciliationError):
    """A single payload is malformed or misses a required field."""

    def __init__(self, reason: RejectionReason, detail: str) -> None:
        super().__init__(f"{reason}: {detail}")
        self.reason = reason
        self.detail = detail


class MissingTimestamp(RecordValidationError):
    """No usable date field to derive a day key from."""

    def __init__(self, detail: str = "no collectionDate, dayKeyLocal or uploadDate") -> None:
        super().__init__(RejectionReason.MISSING_TIMESTAMP, detail)


class StoreUnavailable(ReconciliationError):
    """The persistence backend could not be reached; nothing was committed."""


class DeadlineExceeded(ReconciliationError):
    """A batch operation ran past its caller-supplied deadline and was rolled back."""


class RetentionConflict(ReconciliationError):
    """A deletion would reach into the protected retention window.

    This signals a programming or configuration error, never a runtime
    condition to retry.
    """


class LeaseUnavailable(ReconciliationError):
    """The collection lease for a collection type is held by someone else."""

    def __init__(self, collection_type: str, holder: str | None) -> None:
        super().__init__(f"collection lease '{collection_type}' is held by {holder or 'another holder'}")
        self.collection_type = collection_type
        self.holder = holder
