"""Tests for collection leases."""

from unittest.mock import MagicMock

import pytest

from pulse_sync.adapters.leases import InMemoryLeaseBackend, RedisLeaseBackend, hold_lease
from pulse_sync.domain.enums import CollectionType
from pulse_sync.domain.errors import LeaseUnavailable


class TestInMemoryLeaseBackend:
    """Clock-driven lease semantics."""

    def test_acquire_is_exclusive_per_type(self, lease_backend):
        lease = lease_backend.acquire(CollectionType.AUTO, "harvester", 60)

        assert lease is not None
        assert lease_backend.acquire(CollectionType.AUTO, "someone-else", 60) is None
        # Other collection types are independent.
        assert lease_backend.acquire(CollectionType.MANUAL, "operator", 60) is not None

    def test_release_requires_token(self, lease_backend):
        lease = lease_backend.acquire(CollectionType.AUTO, "harvester", 60)
        impostor = type(lease)(lease.collection_type, lease.holder, "wrong-token", lease.expires_at)

        assert lease_backend.release(impostor) is False
        assert lease_backend.current(CollectionType.AUTO) == lease
        assert lease_backend.release(lease) is True
        assert lease_backend.current(CollectionType.AUTO) is None

    def test_lease_expires(self, lease_backend, clock):
        lease = lease_backend.acquire(CollectionType.AUTO, "harvester", 60)

        clock.advance(seconds=61)

        assert lease_backend.current(CollectionType.AUTO) is None
        assert lease_backend.renew(lease, 60) is None
        assert lease_backend.acquire(CollectionType.AUTO, "next", 60) is not None

    def test_renew_extends(self, lease_backend, clock):
        lease = lease_backend.acquire(CollectionType.AUTO, "harvester", 60)

        clock.advance(seconds=50)
        renewed = lease_backend.renew(lease, 60)
        clock.advance(seconds=50)

        assert renewed is not None
        assert renewed.token == lease.token
        assert lease_backend.current(CollectionType.AUTO) == renewed


class TestHoldLease:
    """The context manager used by ingestion paths."""

    def test_releases_on_exit(self, lease_backend):
        with hold_lease(lease_backend, CollectionType.MANUAL, "cli", 60) as lease:
            assert lease_backend.current(CollectionType.MANUAL) == lease
        assert lease_backend.current(CollectionType.MANUAL) is None

    def test_releases_on_error(self, lease_backend):
        with pytest.raises(RuntimeError):
            with hold_lease(lease_backend, CollectionType.MANUAL, "cli", 60):
                raise RuntimeError("boom")
        assert lease_backend.current(CollectionType.MANUAL) is None

    def test_busy_lease_raises(self, lease_backend):
        lease_backend.acquire(CollectionType.AUTO, "harvester", 60)

        with pytest.raises(LeaseUnavailable) as exc_info:
            with hold_lease(lease_backend, CollectionType.AUTO, "manual-run", 60):
                pass

        assert exc_info.value.holder == "harvester"


class TestRedisLeaseBackend:
    """Redis commands issued by the Redis backend."""

    @pytest.fixture
    def client(self) -> MagicMock:
        client = MagicMock()
        client.register_script.side_effect = lambda script: MagicMock(name="script", return_value=1)
        return client

    def test_acquire_uses_set_nx_px(self, client, clock):
        client.set.return_value = True
        backend = RedisLeaseBackend(client=client, clock=clock)

        lease = backend.acquire(CollectionType.AUTO, "harvester", 90)

        args, kwargs = client.set.call_args
        assert args[0] == "pulse_sync:lease:auto"
        assert args[1] == f"{lease.token}:harvester"
        assert kwargs == {"nx": True, "px": 90000}
        assert lease.holder == "harvester"

    def test_acquire_when_held(self, client, clock):
        client.set.return_value = None
        backend = RedisLeaseBackend(client=client, clock=clock)

        assert backend.acquire(CollectionType.AUTO, "harvester", 90) is None

    def test_release_compares_token(self, client, clock):
        client.set.return_value = True
        backend = RedisLeaseBackend(client=client, clock=clock)
        lease = backend.acquire(CollectionType.MANUAL, "operator", 30)

        assert backend.release(lease) is True
        backend._release.assert_called_once_with(
            keys=["pulse_sync:lease:manual"],
            args=[f"{lease.token}:operator"],
        )

    def test_current_decodes_holder(self, client, clock):
        pipe = client.pipeline.return_value
        pipe.execute.return_value = [b"abc123:harvester:eu-1", 5000]
        backend = RedisLeaseBackend(client=client, clock=clock)

        lease = backend.current(CollectionType.AUTO)

        assert lease.token == "abc123"
        assert lease.holder == "harvester:eu-1"

    def test_current_when_free(self, client, clock):
        client.pipeline.return_value.execute.return_value = [None, -2]
        backend = RedisLeaseBackend(client=client, clock=clock)

        assert backend.current(CollectionType.AUTO) is None
