"""Redis lease backend.

Each lease is one key ``pulse_sync:lease:<type>`` set with ``SET NX PX``.
The value carries a random token; renew and release run as Lua scripts that
compare the token first, so a holder whose lease already expired can never
release or extend someone else's.
"""

import secrets
from datetime import timedelta

import redis

from pulse_sync.adapters.leases.base import Lease, LeaseBackend
from pulse_sync.config import settings
from pulse_sync.domain.enums import CollectionType
from pulse_sync.logging import get_logger
from pulse_sync.utils.clock import Clock, SystemClock

logger = get_logger(__name__)

KEY_PREFIX = "pulse_sync:lease:"

_RELEASE_SCRIPT = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("DEL", KEYS[1])
end
return 0
"""

_RENEW_SCRIPT = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("PEXPIRE", KEYS[1], ARGV[2])
end
return 0
"""


def _encode(token: str, holder: str) -> str:
    return f"{token}:{holder}"


def _decode(value: bytes | str) -> tuple[str, str]:
    text = value.decode() if isinstance(value, bytes) else value
    token, _, holder = text.partition(":")
    return token, holder


class RedisLeaseBackend(LeaseBackend):
    """Leases shared through Redis."""

    def __init__(self, client: redis.Redis | None = None, clock: Clock | None = None) -> None:
        self.client = client or redis.Redis.from_url(settings.redis_url)
        self.clock = clock or SystemClock()
        self._release = self.client.register_script(_RELEASE_SCRIPT)
        self._renew = self.client.register_script(_RENEW_SCRIPT)

    @staticmethod
    def _key(collection_type: CollectionType) -> str:
        return f"{KEY_PREFIX}{CollectionType(collection_type)}"

    def _lease(self, collection_type: CollectionType, token: str, holder: str, ttl_ms: int) -> Lease:
        return Lease(
            collection_type=CollectionType(collection_type),
            holder=holder,
            token=token,
            expires_at=self.clock.now() + timedelta(milliseconds=ttl_ms),
        )

    def acquire(self, collection_type: CollectionType, holder: str, ttl_seconds: float) -> Lease | None:
        token = secrets.token_hex(16)
        ttl_ms = max(1, int(ttl_seconds * 1000))
        acquired = self.client.set(self._key(collection_type), _encode(token, holder), nx=True, px=ttl_ms)
        if not acquired:
            return None
        return self._lease(collection_type, token, holder, ttl_ms)

    def renew(self, lease: Lease, ttl_seconds: float) -> Lease | None:
        ttl_ms = max(1, int(ttl_seconds * 1000))
        renewed = self._renew(
            keys=[self._key(lease.collection_type)],
            args=[_encode(lease.token, lease.holder), ttl_ms],
        )
        if not renewed:
            return None
        return self._lease(lease.collection_type, lease.token, lease.holder, ttl_ms)

    def release(self, lease: Lease) -> bool:
        released = self._release(
            keys=[self._key(lease.collection_type)],
            args=[_encode(lease.token, lease.holder)],
        )
        return bool(released)

    def current(self, collection_type: CollectionType) -> Lease | None:
        key = self._key(collection_type)
        pipe = self.client.pipeline()
        pipe.get(key)
        pipe.pttl(key)
        value, ttl_ms = pipe.execute()
        if value is None or ttl_ms is None or ttl_ms < 0:
            return None
        token, holder = _decode(value)
        return self._lease(collection_type, token, holder, ttl_ms)
