import logging
import time
from dataclasses import dataclass

import redis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    count: int = 0
    retry_after_seconds: int = 0


class RateLimiter:
    """
    Fixed-window request counter per user.

    A user can burst up to `max_requests` instantly; the counter resets
    when the window index changes. Without a redis client everything is
    admitted.
    """

    def __init__(self, client, window_seconds: int = 60, max_requests: int = 40, clock=time.time):
        self.client = client
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.clock = clock

    def window_key(self, user_id, now: float) -> str:
        return f"rl:{user_id}:{int(now // self.window_seconds)}"

    def admit(self, user_id) -> RateDecision:
        if self.client is None or not user_id:
            return RateDecision(allowed=True)

        now = self.clock()
        key = self.window_key(user_id, now)

        # The key is per window, so refreshing its TTL never extends a window.
        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.incr(key)
            pipe.expire(key, self.window_seconds)
            count, _ = pipe.execute()
            count = int(count)
        except redis.RedisError:
            logger.warning("Rate limit store unavailable, admitting request", exc_info=True)
            return RateDecision(allowed=True)

        if count <= self.max_requests:
            return RateDecision(allowed=True, count=count)

        window_end = (int(now // self.window_seconds) + 1) * self.window_seconds
        retry_after = max(1, int(window_end - now))
        logger.info("Rate limited %s (%d requests in window)", user_id, count)
        return RateDecision(allowed=False, count=count, retry_after_seconds=retry_after)
