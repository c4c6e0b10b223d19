# test_rate_limiter.py

from unittest.mock import patch

import fakeredis
import redis

from rate_limiter import RateLimiter


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def _limiter(client, clock, ceiling=5, window=60):
    return RateLimiter(client, window_seconds=window, max_requests=ceiling, clock=clock)


def test_admits_up_to_ceiling_then_rejects(redis_client):
    limiter = _limiter(redis_client, Clock(6000.0))

    decisions = [limiter.admit("u1") for _ in range(6)]

    assert all(d.allowed for d in decisions[:5])
    assert decisions[4].count == 5
    assert decisions[5].allowed is False


def test_rejection_lasts_for_the_rest_of_the_window(redis_client):
    clock = Clock(6000.0)
    limiter = _limiter(redis_client, clock)
    for _ in range(6):
        limiter.admit("u1")

    clock.now = 6059.0
    decision = limiter.admit("u1")

    assert decision.allowed is False
    assert decision.retry_after_seconds == 1


def test_next_window_is_admitted_again(redis_client):
    clock = Clock(6000.0)
    limiter = _limiter(redis_client, clock)
    for _ in range(6):
        limiter.admit("u1")

    clock.now = 6060.0

    decision = limiter.admit("u1")
    assert decision.allowed is True
    assert decision.count == 1


def test_retry_hint_points_to_window_end(redis_client):
    clock = Clock(6010.0)
    limiter = _limiter(redis_client, clock, ceiling=1)
    limiter.admit("u1")

    decision = limiter.admit("u1")

    assert decision.allowed is False
    assert decision.retry_after_seconds == 50


def test_counter_expires_with_window(redis_client):
    clock = Clock(6000.0)
    limiter = _limiter(redis_client, clock)
    limiter.admit("u1")

    ttl = redis_client.ttl(limiter.window_key("u1", clock.now))
    assert 0 < ttl <= 60


def test_users_have_separate_counters(redis_client):
    limiter = _limiter(redis_client, Clock(6000.0), ceiling=1)

    assert limiter.admit("a").allowed is True
    assert limiter.admit("b").allowed is True
    assert limiter.admit("a").allowed is False


def test_without_store_everything_is_admitted():
    limiter = RateLimiter(None, max_requests=1)
    assert all(limiter.admit("u1").allowed for _ in range(10))


def test_store_errors_admit():
    server = fakeredis.FakeServer()
    server.connected = False
    limiter = RateLimiter(fakeredis.FakeRedis(server=server), max_requests=1)

    assert limiter.admit("u1").allowed is True
    assert limiter.admit("u1").allowed is True


def test_counter_and_expiry_are_written_together(redis_client):
    clock = Clock(6000.0)
    limiter = _limiter(redis_client, clock, ceiling=2)

    # the counter must not depend on a separate EXPIRE round trip
    with patch.object(redis_client, "expire", side_effect=redis.ConnectionError("gone")):
        decision = limiter.admit("u1")

    assert decision.count == 1
    assert redis_client.ttl(limiter.window_key("u1", clock.now)) > 0


def test_every_counter_key_has_a_ttl(redis_client):
    clock = Clock(6000.0)
    limiter = _limiter(redis_client, clock, ceiling=1)
    for now in (6000.0, 6001.0, 6061.0, 6125.0):
        clock.now = now
        limiter.admit("u1")

    keys = redis_client.keys("rl:*")
    assert len(keys) == 3
    assert all(redis_client.ttl(key) > 0 for key in keys)
