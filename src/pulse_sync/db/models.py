"""SQLAlchemy ORM models."""

from datetime import datetime
from uuid import UUID as PyUUID
from uuid import uuid4

from sqlalchemy import BigInteger, DateTime, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class DailyVideoRecordModel(Base):
    """One observation of one video on one local day.

    ``(video_id, day_key)`` is unique; all merging relies on that constraint
    as the conflict target of the upsert.
    """

    __tablename__ = "daily_video_records"

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    video_id: Mapped[str] = mapped_column(String(64), nullable=False)
    day_key: Mapped[str] = mapped_column(String(10), nullable=False)

    # Descriptive
    channel_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    channel_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Counters
    view_count: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default="0")
    like_count: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default="0")
    comment_count: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default="0")

    # Timestamps
    upload_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    collection_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Classification
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    sub_category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="unclassified")

    # Provenance
    collection_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    keyword: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Bookkeeping
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")

    __table_args__ = (
        UniqueConstraint("video_id", "day_key", name="uq_video_day"),
        Index("ix_daily_video_records_day_key", "day_key"),
        Index("ix_daily_video_records_updated_at", "updated_at"),
    )
