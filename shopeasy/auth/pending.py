# shopeasy/auth/pending.py

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

import redis
from pydantic import BaseModel

from ..core.config import settings
from ..core.exceptions import ErrorCode, NotFoundError, OTPExpiredError
from ..core.infrastructure.redis_service import get_redis_client
from ..logging import logger
from ..utils.clock import utcnow
from ..utils.tokens import issue_otp

Clock = Callable[[], datetime]


class PendingRegistration(BaseModel):
    """Unverified signup data buffered until the OTP is confirmed."""
    email: str
    otp: str
    name: str
    password_hash: str
    country: str
    contact: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


def _normalize(email: str) -> str:
    return email.strip().lower()


def _not_found(email: str) -> NotFoundError:
    return NotFoundError(
        "No pending registration found. Please sign up again.",
        code=ErrorCode.PENDING_REGISTRATION_NOT_FOUND,
        context={"email": email},
    )


def default_ttl() -> timedelta:
    return timedelta(minutes=settings.OTP_TTL_MINUTES)


class PendingRegistrationCache(ABC):
    """
    Keyed by lower-cased email. One entry per email, last write wins.
    Expiry is checked lazily on read; there is no background sweeper.
    """

    def __init__(self, clock: Clock = utcnow):
        self.clock = clock

    @abstractmethod
    def _load(self, key: str) -> Optional[PendingRegistration]: ...

    @abstractmethod
    def _store(self, key: str, entry: PendingRegistration, ttl: timedelta) -> None: ...

    @abstractmethod
    def _delete(self, key: str) -> None: ...

    def put(self, email: str, payload: Dict[str, str], ttl: Optional[timedelta] = None) -> PendingRegistration:
        ttl = ttl or default_ttl()
        key = _normalize(email)
        entry = PendingRegistration(email=key, expires_at=self.clock() + ttl, **payload)
        self._store(key, entry, ttl)
        return entry

    def get(self, email: str) -> PendingRegistration:
        key = _normalize(email)
        entry = self._load(key)
        if entry is None:
            raise _not_found(key)
        if entry.is_expired(self.clock()):
            self._delete(key)
            logger.info(f"Pending registration for {key} expired and was evicted")
            raise OTPExpiredError("OTP has expired. Please sign up again.")
        return entry

    def consume(self, email: str) -> None:
        self._delete(_normalize(email))

    def resend(self, email: str, ttl: Optional[timedelta] = None) -> PendingRegistration:
        ttl = ttl or default_ttl()
        key = _normalize(email)
        entry = self._load(key)
        if entry is None or entry.is_expired(self.clock()):
            if entry is not None:
                self._delete(key)
            raise _not_found(key)
        refreshed = entry.model_copy(update={"otp": issue_otp(), "expires_at": self.clock() + ttl})
        self._store(key, refreshed, ttl)
        return refreshed


class InMemoryPendingRegistrationCache(PendingRegistrationCache):
    """Process-local store. Entries are lost on restart."""

    def __init__(self, clock: Clock = utcnow):
        super().__init__(clock)
        self._entries: Dict[str, PendingRegistration] = {}

    def _load(self, key):
        return self._entries.get(key)

    def _store(self, key, entry, ttl):
        self._entries[key] = entry

    def _delete(self, key):
        self._entries.pop(key, None)

    def __len__(self):
        return len(self._entries)


class RedisPendingRegistrationCache(PendingRegistrationCache):
    """
    Redis-backed store shared by every worker. Keys carry a Redis expiry a little
    longer than the OTP lifetime so an expired entry is still seen (and reported
    as expired) by the next read.
    """

    KEY_PREFIX = "pending_registration:"
    GRACE_SECONDS = 60

    def __init__(self, client: redis.Redis, clock: Clock = utcnow):
        super().__init__(clock)
        self.client = client

    def _load(self, key):
        raw = self.client.get(self.KEY_PREFIX + key)
        if raw is None:
            return None
        return PendingRegistration.model_validate_json(raw)

    def _store(self, key, entry, ttl):
        self.client.set(
            self.KEY_PREFIX + key,
            entry.model_dump_json(),
            ex=int(ttl.total_seconds()) + self.GRACE_SECONDS,
        )

    def _delete(self, key):
        self.client.delete(self.KEY_PREFIX + key)


_pending_cache: Optional[PendingRegistrationCache] = None


def get_pending_registrations() -> PendingRegistrationCache:
    """FastAPI dependency. Redis-backed when REDIS_URL is configured and reachable."""
    global _pending_cache
    if _pending_cache is None:
        client = get_redis_client()
        if client is not None:
            _pending_cache = RedisPendingRegistrationCache(client)
        else:
            _pending_cache = InMemoryPendingRegistrationCache()
    return _pending_cache
