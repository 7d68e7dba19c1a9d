"""Fixed-window per-client rate limiting backed by Redis counters."""

import time
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from perfo.redis_client import get_redis

_EXEMPT_PATHS = frozenset({"/health", "/ready", "/version"})


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject clients that exceed ``requests_per_window`` within one window."""

    def __init__(self, app: Any, requests_per_window: int = 100, window_seconds: int = 60) -> None:  # noqa: ANN401
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds

    def _limit_headers(self, remaining: int) -> dict[str, str]:
        return {
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Limit": str(self.requests_per_window),
        }

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        try:
            redis = get_redis()
        except RuntimeError:
            # Redis not configured (tests, local scripts): no limiting.
            return await call_next(request)

        client = request.client.host if request.client else "unknown"
        bucket = int(time.time()) // self.window_seconds
        key = f"perfo:ratelimit:{client}:{bucket}"

        pipe = redis.pipeline()
        pipe.incr(key)
        pipe.expire(key, self.window_seconds + 1)
        count, _ = await pipe.execute()

        if count > self.requests_per_window:
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later."},
                headers={"Retry-After": str(self.window_seconds), **self._limit_headers(0)},
            )

        response = await call_next(request)
        response.headers.update(self._limit_headers(max(0, self.requests_per_window - count)))
        return response
