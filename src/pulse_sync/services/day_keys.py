"""Day key resolution.

Every record belongs to exactly one local calendar day, its *day key*
(``YYYY-MM-DD`` in one fixed named time zone). This module is the only place
that decides which timestamp a day key comes from:

1. ``collectionDate`` (when the observation was made)
2. an explicit ``dayKeyLocal`` sent by the producer
3. ``uploadDate`` (when the video was published)

Resolution is pure: it never reads the clock, so replaying the same payload
always lands in the same partition.
"""

import re
from collections.abc import Mapping
from datetime import UTC, date, datetime, time
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pulse_sync.domain.enums import RejectionReason
from pulse_sync.domain.errors import MissingTimestamp, RecordValidationError
from pulse_sync.utils.clock import Clock

DAY_KEY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# (wire name, attribute name) pairs, in resolution order.
_COLLECTION_FIELDS = ("collectionDate", "collection_date")
_EXPLICIT_FIELDS = ("dayKeyLocal", "day_key_local", "day_key")
_UPLOAD_FIELDS = ("uploadDate", "upload_date")


def is_day_key(value: Any) -> bool:
    """Whether ``value`` is a well-formed ``YYYY-MM-DD`` day key."""
    if not isinstance(value, str) or not DAY_KEY_PATTERN.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def load_timezone(name: str | ZoneInfo) -> ZoneInfo:
    """Resolve a zone name, failing loudly on typos."""
    if isinstance(name, ZoneInfo):
        return name
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown time zone: {name!r}") from e


def _pick(source: Any, names: tuple[str, ...]) -> Any:
    for name in names:
        if isinstance(source, Mapping):
            value = source.get(name)
        else:
            value = getattr(source, name, None)
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        return value
    return None


class DayKeyResolver:
    """Derives the local day key of a record in a fixed time zone."""

    def __init__(self, timezone: str | ZoneInfo) -> None:
        self.timezone = load_timezone(timezone)

    def resolve(self, source: Any) -> str:
        """Resolve the day key of a raw payload (mapping) or a record.

        Raises:
            MissingTimestamp: No usable date field is present.
            RecordValidationError: A date field is present but unparseable.
        """
        collected = _pick(source, _COLLECTION_FIELDS)
        if collected is not None:
            return self.day_key_of(collected)

        explicit = _pick(source, _EXPLICIT_FIELDS)
        if explicit is not None:
            return self.day_key_of(explicit)

        uploaded = _pick(source, _UPLOAD_FIELDS)
        if uploaded is not None:
            return self.day_key_of(uploaded)

        raise MissingTimestamp()

    def day_key_of(self, value: Any) -> str:
        """Truncate an instant or bare date to a local day key."""
        parsed = self.parse(value)
        if isinstance(parsed, datetime):
            return parsed.astimezone(self.timezone).date().isoformat()
        return parsed.isoformat()

    def to_instant(self, value: Any) -> datetime:
        """Normalize a timestamp to an aware UTC datetime.

        Bare dates become local midnight of that day, so they map back to the
        same day key.
        """
        parsed = self.parse(value)
        if isinstance(parsed, datetime):
            return parsed.astimezone(UTC)
        return datetime.combine(parsed, time.min, tzinfo=self.timezone).astimezone(UTC)

    def parse(self, value: Any) -> datetime | date:
        """Parse a timestamp into an aware datetime or a bare date.

        Accepts datetimes (naive ones are read as UTC), dates, ISO-8601
        strings and epoch milliseconds.
        """
        if isinstance(value, datetime):
            return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
        if isinstance(value, date):
            return value
        if isinstance(value, bool):
            raise RecordValidationError(RejectionReason.INVALID_TIMESTAMP, f"not a timestamp: {value!r}")
        if isinstance(value, (int, float)):
            try:
                return datetime.fromtimestamp(value / 1000, tz=UTC)
            except (OverflowError, OSError, ValueError) as e:
                raise RecordValidationError(
                    RejectionReason.INVALID_TIMESTAMP, f"epoch out of range: {value!r}"
                ) from e
        if isinstance(value, str):
            text = value.strip()
            try:
                if DAY_KEY_PATTERN.match(text):
                    return date.fromisoformat(text)
                parsed = datetime.fromisoformat(text)
            except ValueError as e:
                raise RecordValidationError(
                    RejectionReason.INVALID_TIMESTAMP, f"unparseable timestamp: {value!r}"
                ) from e
            return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
        raise RecordValidationError(RejectionReason.INVALID_TIMESTAMP, f"not a timestamp: {value!r}")

    def today(self, clock: Clock) -> str:
        """Current local day key according to an injected clock."""
        return clock.today(self.timezone).isoformat()
