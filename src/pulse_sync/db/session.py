"""Database engine management."""

from sqlalchemy import Engine, create_engine, text

from pulse_sync.config import settings


def make_engine(database_url: str) -> Engine:
    """Create an engine; pool sizing only applies to server databases."""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


# Shared engine for the API, worker and CLI; sessions are opened per
# operation by the partition store.
engine = make_engine(settings.database_url)


def init_db() -> None:
    """Verify the partition store's database is reachable."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
