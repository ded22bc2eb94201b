"""
SnipShare Backend: Rate Limiting Middleware
=============================================

What:  Per-IP sliding-window request limit.
How:   Keeps each IP's request timestamps for the last RATE_LIMIT_WINDOW
       seconds; when there are RATE_LIMIT_REQUESTS of them, answers 429 with
       a Retry-After header until the oldest one ages out.
Who:   Applied to every request via Starlette middleware.
When:  First in the middleware chain.

Algorithm: Sliding Window Log
    1. Drop timestamps older than now - window
    2. If the remaining count >= limit, reject
    3. Otherwise record now and continue

    Unlike a fixed window there is no reset instant where a client can
    burst twice the limit.

Limitations:
    State lives in the process. Several workers each enforce their own limit.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, Response

from snipshare.exceptions import RateLimitExceededError
from snipshare.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Configuration (constructor, normally from Settings):
        max_requests: Requests allowed per window
        window_seconds: Window length

    Excluded paths:
        /health and the API docs are never limited.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, max_requests: int = 300, window_seconds: int = 3600):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._seen = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.monotonic()
        window_start = now - self.window_seconds

        timestamps = [ts for ts in self._requests[client_ip] if ts > window_start]
        self._requests[client_ip] = timestamps

        if len(timestamps) >= self.max_requests:
            retry_after = int(timestamps[0] + self.window_seconds - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip,
                len(timestamps),
                self.window_seconds,
            )
            return self._reject(request, RateLimitExceededError(retry_after=retry_after))

        timestamps.append(now)

        # Sweep idle IPs every 1000 requests so the dict cannot grow forever.
        self._seen += 1
        if self._seen % 1000 == 0:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    @staticmethod
    def _reject(request: Request, exc: RateLimitExceededError) -> Response:
        # Exceptions raised here would bypass the app's handlers, so the
        # 429 response is built in place.
        headers = {"Retry-After": str(exc.retry_after)}
        if request.url.path.startswith("/api"):
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": {"retry_after": exc.retry_after},
                    "request_id": request_id_var.get(""),
                },
                headers=headers,
            )
        return HTMLResponse(
            f"<h1>Too many requests</h1><p>{exc.message}</p>",
            status_code=429,
            headers=headers,
        )

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]

        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
