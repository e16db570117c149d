"""Pacing for upstream transcription calls.

``RateLimiter`` is a token bucket written as GCRA: instead of counting
tokens it keeps a single "theoretical arrival time" (TAT). A call may
proceed once ``now >= TAT - burst_tolerance``; every call pushes the TAT
forward by one emission interval. Keeping one number per bucket lets the
state live either in process memory or in redis, where every Celery
worker shares it.
"""

import logging
import threading
import time
from typing import Callable, Optional

import redis
from django.conf import settings

logger = logging.getLogger(__name__)

_limiter = None
_limiter_lock = threading.Lock()


class MemoryStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._tat = 0.0

    def reserve(self, now: float, interval: float, tolerance: float) -> float:
        with self._lock:
            self._tat, wait = _advance(self._tat, now, interval, tolerance)
        return wait


class RedisStore:
    def __init__(self, client: redis.Redis, key: str, lock_timeout: float = 5.0):
        self.client = client
        self.key = key
        self.lock_timeout = lock_timeout

    def reserve(self, now: float, interval: float, tolerance: float) -> float:
        with self.client.lock(f"{self.key}:lock", timeout=self.lock_timeout, blocking_timeout=self.lock_timeout):
            raw = self.client.get(self.key)
            tat, wait = _advance(float(raw or 0.0), now, interval, tolerance)
            ttl_ms = max(1, int((tat - now + tolerance) * 1000))
            self.client.set(self.key, repr(tat), px=ttl_ms)
        return wait


def _advance(tat: float, now: float, interval: float, tolerance: float):
    tat = max(tat, now)
    wait = max(0.0, tat - tolerance - now)
    return tat + interval, wait


class RateLimiter:
    def __init__(
        self,
        rate: float,
        burst: int = 1,
        store=None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if rate <= 0:
            raise ValueError("rate must be positive")
        if burst < 1:
            raise ValueError("burst must be at least 1")
        self.interval = 1.0 / rate
        self.tolerance = self.interval * (burst - 1)
        self.store = store or MemoryStore()
        self._clock = clock
        self._sleep = sleep

    def acquire(self) -> float:
        """Block until a call may go out. Returns the seconds waited."""
        wait = self.store.reserve(self._clock(), self.interval, self.tolerance)
        if wait > 0:
            logger.info("Rate limiter waiting %.3fs before next upstream call", wait)
            self._sleep(wait)
        return wait


def build_limiter_from_settings() -> RateLimiter:
    backend = settings.TRANSCRIPTION_RATE_LIMIT_BACKEND
    if backend == "redis":
        client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
        store = RedisStore(client, "ratelimit:transcription")
    elif backend == "local":
        store = MemoryStore()
    else:
        raise ValueError(f"Unknown TRANSCRIPTION_RATE_LIMIT_BACKEND: {backend}")
    return RateLimiter(
        rate=settings.TRANSCRIPTION_RATE_PER_SECOND,
        burst=settings.TRANSCRIPTION_RATE_BURST,
        store=store,
    )


def get_transcription_limiter() -> RateLimiter:
    global _limiter
    with _limiter_lock:
        if _limiter is None:
            _limiter = build_limiter_from_settings()
        return _limiter


def reset_transcription_limiter(limiter: Optional[RateLimiter] = None) -> None:
    global _limiter
    with _limiter_lock:
        _limiter = limiter
