"""Fixed-window request throttling shared across API processes via Redis."""
import logging
from dataclasses import dataclass

import redis
from fastapi import Request

from headway.core.config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "ratelimit:"


@dataclass
class RateLimitRule:
    limit: int
    window_seconds: int


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_in: int  # seconds until the window resets


def booking_rule() -> RateLimitRule:
    return RateLimitRule(settings.RATE_LIMIT_BOOKING_LIMIT, settings.RATE_LIMIT_BOOKING_WINDOW_SECONDS)


class RateLimiter:
    """Counts hits per identifier in a Redis key that expires with the window.

    Only ``incr``, ``expire`` and ``ttl`` are used, so any client exposing
    those works.
    """

    def __init__(self, client):
        self.client = client

    def hit(self, identifier: str, rule: RateLimitRule) -> RateLimitResult:
        key = KEY_PREFIX + identifier
        count = int(self.client.incr(key))
        if count == 1:
            self.client.expire(key, rule.window_seconds)
        ttl = int(self.client.ttl(key))
        if ttl < 0:
            # key lost its expiry (crash between incr and expire)
            self.client.expire(key, rule.window_seconds)
            ttl = rule.window_seconds
        if count > rule.limit:
            return RateLimitResult(allowed=False, remaining=0, reset_in=ttl)
        return RateLimitResult(allowed=True, remaining=rule.limit - count, reset_in=ttl)


def client_identifier(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    for header in ("x-real-ip", "cf-connecting-ip"):
        value = request.headers.get(header)
        if value:
            return value.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown-client"


_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    global _limiter
    if _limiter is None:
        _limiter = RateLimiter(redis.Redis.from_url(settings.REDIS_URL))
    return _limiter
