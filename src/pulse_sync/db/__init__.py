"""Database layer."""

from pulse_sync.db.models import Base, DailyVideoRecordModel

__all__ = ["Base", "DailyVideoRecordModel"]
