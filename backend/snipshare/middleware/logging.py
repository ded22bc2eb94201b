"""
SnipShare Backend: Request Logging Middleware
===============================================

What:  One access-log line per request, keyed by route template so that
       /snippet/3 and /snippet/41 group together.
How:   Times the downstream call with perf_counter. The level follows the
       outcome: 5xx or an exception escaping the app is ERROR, 4xx or a
       request slower than SLOW_REQUEST_MS is WARNING, anything else INFO.
Who:   Applied to every request via Starlette middleware.
When:  After RequestIDMiddleware (the request id is set) and before
       SessionMiddleware, which has resolved the cookie by the time the
       response comes back.

Line format:
    GET /snippet/{snippet_id} 404 3.2ms session=yes [a1b2c3d4] from 10.0.0.7

Never logged: request bodies (passwords, snippet code), cookie values
(session ids), query strings (search terms).
"""

import logging
import time
from typing import Any, Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from snipshare.middleware.request_id import request_id_var

logger = logging.getLogger("snipshare.access")


def route_label(request: Request) -> str:
    """The matched route's path template, or the raw path when nothing matched."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    # Health checks and stylesheet fetches would drown out page and API traffic.
    QUIET_PREFIXES = ("/health", "/static")
    SLOW_REQUEST_MS = 1000.0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path.startswith(self.QUIET_PREFIXES):
            return await call_next(request)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            self._log(request, logging.ERROR, 500, start_time, unhandled=True)
            raise

        status = response.status_code
        duration_ms = (time.perf_counter() - start_time) * 1000
        if status >= 500:
            level = logging.ERROR
        elif status >= 400 or duration_ms >= self.SLOW_REQUEST_MS:
            level = logging.WARNING
        else:
            level = logging.INFO

        self._log(request, level, status, start_time)
        return response

    def _log(
        self,
        request: Request,
        level: int,
        status: int,
        start_time: float,
        unhandled: bool = False,
    ) -> None:
        duration_ms = (time.perf_counter() - start_time) * 1000
        route = route_label(request)
        has_session = getattr(request.state, "session_id", None) is not None
        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")

        extra: Dict[str, Any] = {
            "request_id": rid,
            "method": request.method,
            "route": route,
            "status": status,
            "duration_ms": round(duration_ms, 2),
            "has_session": has_session,
            "client_ip": client_ip,
        }
        logger.log(
            level,
            "%s %s %d %.1fms session=%s [%s] from %s%s",
            request.method,
            route,
            status,
            duration_ms,
            "yes" if has_session else "no",
            rid,
            client_ip,
            " (unhandled exception)" if unhandled else "",
            extra=extra,
        )
