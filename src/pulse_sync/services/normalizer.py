"""Validation and coercion of raw producer payloads into records."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from pulse_sync.domain.enums import CollectionType, RecordStatus, RejectionReason
from pulse_sync.domain.errors import RecordValidationError
from pulse_sync.domain.models import MergeReport, Record, RejectedItem, record_id
from pulse_sync.logging import get_logger
from pulse_sync.services.day_keys import DayKeyResolver

logger = get_logger(__name__)


def _coerce_count(value: Any) -> int:
    """Coerce a counter to a non-negative int; absent means 0."""
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ValueError("boolean is not a count")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"count must be integral, got {value}")
        value = int(value)
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text.isdigit():
            raise ValueError(f"count must be a non-negative integer, got {value!r}")
        value = int(text)
    elif not isinstance(value, int):
        raise ValueError(f"count must be a number, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"count must be non-negative, got {value}")
    return value


class IncomingRecord(BaseModel):
    """Shape of one raw record as sent by any producer.

    Field names are accepted in the camelCase wire form and in snake_case.
    Timestamps are kept raw; the day key resolver parses them. Producer ids
    (UUIDs, numbers or cache-local strings) are ignored: the store owns ids.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    video_id: str = Field(validation_alias=AliasChoices("videoId", "video_id"))
    channel_id: str | None = Field(None, validation_alias=AliasChoices("channelId", "channel_id"))
    channel_name: str | None = Field(None, validation_alias=AliasChoices("channelName", "channel_name"))
    title: str | None = Field(None, validation_alias=AliasChoices("title", "videoTitle", "video_title"))
    description: str | None = Field(
        None, validation_alias=AliasChoices("description", "videoDescription", "video_description")
    )
    thumbnail_url: str | None = Field(None, validation_alias=AliasChoices("thumbnailUrl", "thumbnail_url"))
    view_count: int = Field(0, validation_alias=AliasChoices("viewCount", "view_count"))
    like_count: int = Field(0, validation_alias=AliasChoices("likeCount", "like_count"))
    comment_count: int = Field(0, validation_alias=AliasChoices("commentCount", "comment_count"))
    upload_date: Any = Field(None, validation_alias=AliasChoices("uploadDate", "upload_date"))
    collection_date: Any = Field(None, validation_alias=AliasChoices("collectionDate", "collection_date"))
    day_key_local: Any = Field(None, validation_alias=AliasChoices("dayKeyLocal", "day_key_local"))
    category: str | None = None
    sub_category: str | None = Field(None, validation_alias=AliasChoices("subCategory", "sub_category"))
    status: RecordStatus = RecordStatus.UNCLASSIFIED
    collection_type: CollectionType = Field(
        CollectionType.MANUAL, validation_alias=AliasChoices("collectionType", "collection_type")
    )
    keyword: str | None = None
    source: str | None = None
    created_at: Any = Field(None, validation_alias=AliasChoices("createdAt", "created_at"))

    @field_validator("video_id")
    @classmethod
    def _video_id_present(cls, value: str) -> str:
        if not value:
            raise ValueError("videoId must not be empty")
        return value

    @field_validator("view_count", "like_count", "comment_count", mode="before")
    @classmethod
    def _counts(cls, value: Any) -> int:
        return _coerce_count(value)

    @field_validator("status", "collection_type", mode="before")
    @classmethod
    def _enum_defaults(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return cls.model_fields[info.field_name].default
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator(
        "channel_id",
        "channel_name",
        "title",
        "description",
        "thumbnail_url",
        "category",
        "sub_category",
        "keyword",
        "source",
    )
    @classmethod
    def _blank_is_none(cls, value: str | None) -> str | None:
        return value or None


_REASON_BY_FIELD: dict[str, RejectionReason] = {
    "videoId": RejectionReason.MISSING_VIDEO_ID,
    "video_id": RejectionReason.MISSING_VIDEO_ID,
    "viewCount": RejectionReason.INVALID_METRIC,
    "view_count": RejectionReason.INVALID_METRIC,
    "likeCount": RejectionReason.INVALID_METRIC,
    "like_count": RejectionReason.INVALID_METRIC,
    "commentCount": RejectionReason.INVALID_METRIC,
    "comment_count": RejectionReason.INVALID_METRIC,
    "status": RejectionReason.INVALID_STATUS,
    "collectionType": RejectionReason.INVALID_COLLECTION_TYPE,
    "collection_type": RejectionReason.INVALID_COLLECTION_TYPE,
}


def _rejection_from(error: ValidationError) -> tuple[RejectionReason, str]:
    first = error.errors()[0]
    loc = first.get("loc") or ("",)
    field_name = str(loc[0])
    reason = _REASON_BY_FIELD.get(field_name, RejectionReason.INVALID_FIELD)
    return reason, f"{field_name}: {first.get('msg', 'invalid value')}"


def _raw_video_id(raw: Mapping[str, Any]) -> str | None:
    value = raw.get("videoId", raw.get("video_id"))
    return value if isinstance(value, str) and value else None


@dataclass
class NormalizedBatch:
    """Valid records and rejected items of one raw batch."""

    records: list[Record] = field(default_factory=list)
    rejected: list[RejectedItem] = field(default_factory=list)
    # Position of each accepted record in the raw batch.
    source_indexes: list[int] = field(default_factory=list)

    def combine(self, report: MergeReport) -> MergeReport:
        """Fold normalization rejections into a merge report of ``records``.

        Indexes of rejections raised by the merge step are mapped back to
        positions in the raw batch.
        """
        remapped = [replace(item, index=self.source_indexes[item.index]) for item in report.rejected]
        report.rejected = sorted(self.rejected + remapped, key=lambda item: item.index)
        return report


class RecordNormalizer:
    """Turns raw producer payloads into canonical records."""

    def __init__(self, resolver: DayKeyResolver) -> None:
        self.resolver = resolver

    def normalize(self, raw: Any, index: int = 0) -> Record | RejectedItem:
        """Validate one payload.

        Never raises for bad input: every problem becomes a ``RejectedItem``
        with a reason code.
        """
        if not isinstance(raw, Mapping):
            return RejectedItem(
                index=index,
                reason=RejectionReason.NOT_AN_OBJECT,
                detail=f"expected an object, got {type(raw).__name__}",
            )

        try:
            incoming = IncomingRecord.model_validate(raw)
        except ValidationError as e:
            reason, detail = _rejection_from(e)
            return RejectedItem(index=index, reason=reason, detail=detail, video_id=_raw_video_id(raw))

        try:
            return self._to_record(incoming)
        except RecordValidationError as e:
            return RejectedItem(index=index, reason=e.reason, detail=e.detail, video_id=incoming.video_id)

    def normalize_batch(self, raw_items: Iterable[Any]) -> NormalizedBatch:
        """Validate a batch item by item; bad items never abort the batch."""
        batch = NormalizedBatch()
        for index, raw in enumerate(raw_items):
            result = self.normalize(raw, index=index)
            if isinstance(result, RejectedItem):
                batch.rejected.append(result)
            else:
                batch.records.append(result)
                batch.source_indexes.append(index)

        if batch.rejected:
            logger.info(
                "normalize_batch_rejections",
                accepted=len(batch.records),
                rejected=len(batch.rejected),
                reasons=sorted({str(item.reason) for item in batch.rejected}),
            )
        return batch

    def _to_record(self, incoming: IncomingRecord) -> Record:
        day_key = self.resolver.resolve(incoming)
        return Record(
            id=record_id(incoming.video_id, day_key),
            video_id=incoming.video_id,
            day_key=day_key,
            channel_id=incoming.channel_id,
            channel_name=incoming.channel_name,
            title=incoming.title,
            description=incoming.description,
            thumbnail_url=incoming.thumbnail_url,
            view_count=incoming.view_count,
            like_count=incoming.like_count,
            comment_count=incoming.comment_count,
            upload_date=self._instant(incoming.upload_date),
            collection_date=self._instant(incoming.collection_date),
            category=incoming.category,
            sub_category=incoming.sub_category,
            status=incoming.status,
            collection_type=incoming.collection_type,
            keyword=incoming.keyword,
            source=incoming.source,
            created_at=self._instant(incoming.created_at),
        )

    def _instant(self, value: Any) -> datetime | None:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return self.resolver.to_instant(value)
