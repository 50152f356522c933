"""
web/limiter.py -- Shared slowapi rate limiter instance.

Imported by web/main.py (to mount SlowAPIMiddleware and answer 429s) and
web/routes.py (to apply per-route limits with @limiter.limit()). A single
shared instance means all routes share one in-memory counter store.

@limiter.limit() must sit BELOW @router.post(): the router has to register
the wrapped function, otherwise the limit is recorded but never checked.
"""

import time

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

# Applied to POST /login and POST /register -- brute-force and spam mitigation.
AUTH_RATE_LIMIT = "10/minute"

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


def retry_after_seconds(request: Request, exc: RateLimitExceeded) -> int:
    """Seconds until the window that rejected this request resets.

    slowapi leaves (limit, key args) for the evaluated limit on
    request.state.view_rate_limit; without it, fall back to the full window.
    """
    current = getattr(request.state, "view_rate_limit", None)
    if current is None:
        return exc.limit.limit.get_expiry()
    item, args = current
    reset_at = limiter.limiter.get_window_stats(item, *args)[0]
    return max(1, int(1 + reset_at - time.time()))
