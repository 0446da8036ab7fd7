"""
Fixed-window rate limiting backed by the Django cache.

Each (scope, identifier) pair gets a counter per window; the counter key
embeds the window start so it expires on its own.
"""

import time
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.core.cache import cache

from .exceptions import RateLimitedError


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: int


def check_rate_limit(
    identifier: str,
    limit: int,
    window_seconds: int,
    scope: str = 'api',
    now: Optional[float] = None
) -> RateLimitResult:
    now = time.time() if now is None else now
    window_start = int(now // window_seconds) * window_seconds
    reset_at = window_start + window_seconds
    key = f'ratelimit:{scope}:{identifier}:{window_start}'

    cache.add(key, 0, timeout=window_seconds)
    try:
        count = cache.incr(key)
    except ValueError:
        # Key expired between add() and incr()
        cache.set(key, 1, timeout=window_seconds)
        count = 1

    return RateLimitResult(
        allowed=count <= limit,
        remaining=max(0, limit - count),
        reset_at=reset_at,
    )


def enforce_rate_limit(scope: str, identifier: str) -> RateLimitResult:
    """Raise RateLimitedError when `identifier` exceeded the limit configured for `scope`."""
    limit, window = settings.RATE_LIMITS[scope]
    result = check_rate_limit(identifier, limit, window, scope=scope)
    if not result.allowed:
        retry_after = max(1, int(result.reset_at - time.time()))
        raise RateLimitedError(retry_after=retry_after)
    return result


def client_ip(request):
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', '')
