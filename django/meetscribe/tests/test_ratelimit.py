from contextlib import contextmanager

import pytest

from intelligence.ratelimit import (
    MemoryStore,
    RateLimiter,
    RedisStore,
    build_limiter_from_settings,
)


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class FakeRedis:
    def __init__(self):
        self.values = {}
        self.locks = []

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value, px=None):
        self.values[key] = value

    @contextmanager
    def lock(self, name, timeout=None, blocking_timeout=None):
        self.locks.append(name)
        yield


def _limiter(clock, **kwargs):
    return RateLimiter(clock=clock, sleep=clock.sleep, **kwargs)


def test_first_call_goes_out_immediately_then_spaced():
    clock = FakeClock()
    limiter = _limiter(clock, rate=1.0)

    waits = [limiter.acquire() for _ in range(3)]

    assert waits == [0.0, 1.0, 1.0]
    assert clock.now == 102.0


def test_burst_allows_back_to_back_calls():
    clock = FakeClock()
    limiter = _limiter(clock, rate=2.0, burst=3)

    waits = [limiter.acquire() for _ in range(4)]

    assert waits[:3] == [0.0, 0.0, 0.0]
    assert waits[3] == pytest.approx(0.5)


def test_idle_time_refills_the_bucket():
    clock = FakeClock()
    limiter = _limiter(clock, rate=1.0)
    limiter.acquire()
    clock.now += 10

    assert limiter.acquire() == 0.0
    assert clock.sleeps == []


@pytest.mark.parametrize("kwargs", [{"rate": 0}, {"rate": 1.0, "burst": 0}])
def test_rejects_bad_parameters(kwargs):
    with pytest.raises(ValueError):
        RateLimiter(**kwargs)


def test_redis_store_shares_schedule_between_limiters():
    clock = FakeClock()
    client = FakeRedis()
    first = _limiter(clock, rate=1.0, store=RedisStore(client, "ratelimit:test"))
    second = _limiter(clock, rate=1.0, store=RedisStore(client, "ratelimit:test"))

    assert first.acquire() == 0.0
    assert second.acquire() == 1.0
    assert client.locks == ["ratelimit:test:lock", "ratelimit:test:lock"]


def test_memory_store_is_default():
    assert isinstance(RateLimiter(rate=1.0).store, MemoryStore)


def test_unknown_backend_is_rejected(settings):
    settings.TRANSCRIPTION_RATE_LIMIT_BACKEND = "carrier-pigeon"
    with pytest.raises(ValueError):
        build_limiter_from_settings()


def test_local_backend_from_settings(settings):
    settings.TRANSCRIPTION_RATE_LIMIT_BACKEND = "local"
    settings.TRANSCRIPTION_RATE_PER_SECOND = 4.0
    settings.TRANSCRIPTION_RATE_BURST = 2

    limiter = build_limiter_from_settings()

    assert limiter.interval == 0.25
    assert limiter.tolerance == 0.25
