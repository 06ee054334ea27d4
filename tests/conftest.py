"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator
from datetime import UTC, datetime
from typing import Any

import pytest
from fastapi.testclient import TestClient

# Set test environment before importing app modules
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = "redis://localhost:6379/1"
os.environ["CELERY_BROKER_URL"] = "redis://localhost:6379/1"
os.environ["CELERY_RESULT_BACKEND"] = "redis://localhost:6379/1"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DAY_KEY_TIMEZONE"] = "Asia/Seoul"
os.environ["RETENTION_DAYS"] = "14"
os.environ["SWEEP_ON_STARTUP"] = "false"

# 2025-10-12 12:00 in Asia/Seoul
NOW = datetime(2025, 10, 12, 3, 0, tzinfo=UTC)


def _make_raw(video_id: str, day: str = "2025-10-12", **overrides: Any) -> dict[str, Any]:
    """A raw producer payload observed at 10:00 local time on ``day``."""
    raw: dict[str, Any] = {
        "videoId": video_id,
        "channelId": f"UC-{video_id}",
        "channelName": "Test Channel",
        "title": f"Video {video_id}",
        "viewCount": 100,
        "likeCount": 10,
        "commentCount": 1,
        "uploadDate": "2025-10-01T09:00:00Z",
        "collectionDate": f"{day}T10:00:00+09:00",
        "status": "unclassified",
        "collectionType": "auto",
        "keyword": "music",
    }
    raw.update(overrides)
    return raw


@pytest.fixture
def make_raw():
    """Factory for raw producer payloads."""
    return _make_raw


@pytest.fixture
def clock():
    """A clock frozen at 2025-10-12 12:00 local time."""
    from pulse_sync.utils.clock import FixedClock

    return FixedClock(NOW)


@pytest.fixture
def memory_store():
    """An empty in-memory partition store."""
    from pulse_sync.adapters.store.memory import InMemoryPartitionStore

    return InMemoryPartitionStore()


@pytest.fixture
def sql_store():
    """A SQLite-backed partition store with a fresh schema."""
    from sqlalchemy import create_engine
    from sqlalchemy.pool import StaticPool

    from pulse_sync.adapters.store.sql import SqlPartitionStore

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    store = SqlPartitionStore(engine)
    store.create_schema()
    yield store
    engine.dispose()


@pytest.fixture
def engine(memory_store, clock):
    """A reconciliation engine over the in-memory store."""
    from pulse_sync.services.engine import ReconciliationEngine

    return ReconciliationEngine(store=memory_store, clock=clock, timezone="Asia/Seoul")


@pytest.fixture
def lease_backend(clock):
    """An in-memory lease backend driven by the fixed clock."""
    from pulse_sync.adapters.leases.memory import InMemoryLeaseBackend

    return InMemoryLeaseBackend(clock=clock)


@pytest.fixture
def test_client(engine, lease_backend) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI app, wired to in-memory backends."""
    from pulse_sync.adapters.leases import get_lease_backend
    from pulse_sync.main import app
    from pulse_sync.services.engine import get_engine

    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_lease_backend] = lambda: lease_backend
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
