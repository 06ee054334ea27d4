"""SQLAlchemy-backed partition store.

Each keyed write is one ``INSERT ... ON CONFLICT (video_id, day_key) DO
UPDATE`` statement whose ``SET`` clause is compiled from ``MERGE_POLICY``, so
the read-modify-write happens inside the database and concurrent writers of
the same key cannot lose each other's counters. A ``WHERE`` clause skips the
update entirely when the merge would change nothing, which keeps
``version`` and ``updated_at`` stable under re-application.

PostgreSQL is the production backend; SQLite (3.35+) is supported for tests
and single-user installs.
"""

from collections.abc import Generator, Iterable, Mapping, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Engine, case, delete, exists, func, or_, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.sql import ColumnElement

from pulse_sync.adapters.store.base import PartitionStore
from pulse_sync.db.models import Base, DailyVideoRecordModel
from pulse_sync.domain.enums import STATUS_RANK, CollectionType, MergeRule, RecordStatus, UpsertOutcome
from pulse_sync.domain.errors import StoreUnavailable
from pulse_sync.domain.models import Record, UpsertResult, record_id
from pulse_sync.domain.policy import MERGE_POLICY
from pulse_sync.logging import get_logger
from pulse_sync.utils.deadline import Deadline

logger = get_logger(__name__)

records_table = DailyVideoRecordModel.__table__


def _utc(value: datetime | None) -> datetime | None:
    """Normalize to aware UTC; naive values coming back from SQLite are UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _status_rank(expr: Any) -> ColumnElement[int]:
    return case(
        {status.value: rank for status, rank in STATUS_RANK.items()},
        value=expr,
        else_=0,
    )


def _greatest(dialect: str, a: Any, b: Any) -> ColumnElement[Any]:
    # NULL-safe on both backends: SQLite's scalar max() returns NULL if any
    # argument is NULL.
    a_safe = func.coalesce(a, b)
    b_safe = func.coalesce(b, a)
    if dialect == "sqlite":
        return func.max(a_safe, b_safe)
    return func.greatest(a_safe, b_safe)


def compile_merge_policy(dialect: str, excluded: Any) -> dict[str, ColumnElement[Any]]:
    """Translate ``MERGE_POLICY`` into ``ON CONFLICT DO UPDATE`` expressions.

    Args:
        dialect: SQLAlchemy dialect name (``postgresql`` or ``sqlite``).
        excluded: The ``excluded`` pseudo-table of the insert statement.

    Returns:
        Column name -> expression over the stored row and ``excluded``.
    """
    table = records_table
    take_classification = _status_rank(excluded.status) >= _status_rank(table.c.status)

    merged: dict[str, ColumnElement[Any]] = {}
    for name, rule in MERGE_POLICY.items():
        old = table.c[name]
        new = excluded[name]
        if rule is MergeRule.MONOTONIC_MAX:
            merged[name] = _greatest(dialect, old, new)
        elif rule is MergeRule.OVERWRITE:
            merged[name] = new
        elif rule is MergeRule.CLASSIFICATION:
            merged[name] = case((take_classification, func.coalesce(new, old)), else_=old)
        elif rule is MergeRule.PREFER_INCOMING:
            merged[name] = func.coalesce(new, old)
        elif rule is MergeRule.KEEP_EXISTING:
            merged[name] = func.coalesce(old, new)
    return merged


def _row_values(record: Record, now: datetime) -> dict[str, Any]:
    return {
        "id": record_id(record.video_id, record.day_key),
        "video_id": record.video_id,
        "day_key": record.day_key,
        "channel_id": record.channel_id,
        "channel_name": record.channel_name,
        "title": record.title,
        "description": record.description,
        "thumbnail_url": record.thumbnail_url,
        "view_count": record.view_count,
        "like_count": record.like_count,
        "comment_count": record.comment_count,
        "upload_date": _utc(record.upload_date),
        "collection_date": _utc(record.collection_date),
        "category": record.category,
        "sub_category": record.sub_category,
        "status": RecordStatus(record.status).value,
        "collection_type": CollectionType(record.collection_type).value if record.collection_type else None,
        "keyword": record.keyword,
        "source": record.source,
        "created_at": _utc(record.created_at) or now,
        "updated_at": now,
        "version": 1,
    }


def _to_record(row: Mapping[str, Any]) -> Record:
    return Record(
        id=row["id"],
        video_id=row["video_id"],
        day_key=row["day_key"],
        channel_id=row["channel_id"],
        channel_name=row["channel_name"],
        title=row["title"],
        description=row["description"],
        thumbnail_url=row["thumbnail_url"],
        view_count=row["view_count"],
        like_count=row["like_count"],
        comment_count=row["comment_count"],
        upload_date=_utc(row["upload_date"]),
        collection_date=_utc(row["collection_date"]),
        category=row["category"],
        sub_category=row["sub_category"],
        status=RecordStatus(row["status"]),
        collection_type=CollectionType(row["collection_type"]) if row["collection_type"] else None,
        keyword=row["keyword"],
        source=row["source"],
        created_at=_utc(row["created_at"]),
        updated_at=_utc(row["updated_at"]),
        version=row["version"],
    )


class SqlPartitionStore(PartitionStore):
    """Partition store over the ``daily_video_records`` table."""

    def __init__(self, engine: Engine | None = None) -> None:
        if engine is None:
            from pulse_sync.db.session import engine as default_engine

            engine = default_engine
        self.engine = engine
        self.session_factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
        self.dialect = engine.dialect.name

    def create_schema(self) -> None:
        """Create the table if missing (tests and single-user installs)."""
        Base.metadata.create_all(self.engine)

    @contextmanager
    def _session(self) -> Generator[Session, None, None]:
        """One transaction; connectivity failures become ``StoreUnavailable``."""
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except (OperationalError, InterfaceError) as e:
            session.rollback()
            logger.error("sql_store_unavailable", error=str(e))
            raise StoreUnavailable(str(e)) from e
        except DBAPIError as e:
            session.rollback()
            if e.connection_invalidated:
                logger.error("sql_store_connection_lost", error=str(e))
                raise StoreUnavailable(str(e)) from e
            raise
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _upsert_statement(self, record: Record, now: datetime) -> Any:
        table = records_table
        insert = sqlite_insert if self.dialect == "sqlite" else pg_insert
        stmt = insert(table).values(**_row_values(record, now))
        merged = compile_merge_policy(self.dialect, stmt.excluded)
        changed = or_(*(merged[name].is_distinct_from(table.c[name]) for name in merged))
        return stmt.on_conflict_do_update(
            index_elements=[table.c.video_id, table.c.day_key],
            set_={
                **merged,
                "updated_at": stmt.excluded.updated_at,
                "version": table.c.version + 1,
            },
            where=changed,
        ).returning(*table.c)

    def get_partitions(self, day_keys: Iterable[str]) -> dict[str, list[Record]]:
        wanted = sorted(set(day_keys))
        partitions: dict[str, list[Record]] = {day_key: [] for day_key in wanted}
        if not wanted:
            return partitions
        with self._session() as session:
            rows = session.execute(
                select(records_table)
                .where(records_table.c.day_key.in_(wanted))
                .order_by(records_table.c.day_key, records_table.c.video_id)
            ).mappings()
            for row in rows:
                partitions[row["day_key"]].append(_to_record(row))
        return partitions

    def get(self, video_id: str, day_key: str) -> Record | None:
        with self._session() as session:
            row = session.execute(
                select(records_table).where(
                    records_table.c.video_id == video_id,
                    records_table.c.day_key == day_key,
                )
            ).mappings().first()
            return _to_record(row) if row is not None else None

    def upsert_many(
        self,
        records: Sequence[Record],
        now: datetime,
        deadline: Deadline | None = None,
    ) -> list[UpsertResult]:
        now = now.astimezone(UTC) if now.tzinfo else now.replace(tzinfo=UTC)
        results: list[UpsertResult] = []
        with self._session() as session:
            for record in records:
                if deadline is not None:
                    deadline.check("upsert_many")
                row = session.execute(self._upsert_statement(record, now)).mappings().first()
                if row is None:
                    current = session.execute(
                        select(records_table).where(
                            records_table.c.video_id == record.video_id,
                            records_table.c.day_key == record.day_key,
                        )
                    ).mappings().one()
                    results.append(UpsertResult(UpsertOutcome.UNCHANGED, _to_record(current)))
                    continue
                outcome = UpsertOutcome.INSERTED if row["version"] == 1 else UpsertOutcome.UPDATED
                results.append(UpsertResult(outcome, _to_record(row)))
            if deadline is not None:
                deadline.check("upsert_many")
        logger.debug("sql_store_upsert_many", rows=len(results))
        return results

    def changed_since(self, since: datetime | None) -> list[Record]:
        query = select(records_table)
        if since is not None:
            query = query.where(records_table.c.updated_at > _utc(since))
        query = query.order_by(
            records_table.c.updated_at, records_table.c.day_key, records_table.c.video_id
        )
        with self._session() as session:
            return [_to_record(row) for row in session.execute(query).mappings()]

    def has_changes_since(self, since: datetime | None) -> bool:
        condition = exists().select_from(records_table)
        if since is not None:
            condition = condition.where(records_table.c.updated_at > _utc(since))
        with self._session() as session:
            return bool(session.execute(select(condition)).scalar())

    def delete_by_ids(self, ids: Iterable[UUID]) -> int:
        wanted = list(set(ids))
        if not wanted:
            return 0
        with self._session() as session:
            result = session.execute(delete(records_table).where(records_table.c.id.in_(wanted)))
            return result.rowcount or 0

    def delete_before(self, cutoff_day_key: str) -> int:
        with self._session() as session:
            result = session.execute(
                delete(records_table).where(records_table.c.day_key < cutoff_day_key)
            )
            return result.rowcount or 0

    def day_keys(self) -> list[str]:
        with self._session() as session:
            return list(
                session.execute(
                    select(records_table.c.day_key).distinct().order_by(records_table.c.day_key)
                ).scalars()
            )

    def health_check(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error("sql_store_health_check_failed", error=str(e))
            return False
