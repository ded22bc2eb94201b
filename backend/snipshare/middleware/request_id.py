"""
SnipShare Backend: Request ID Middleware
==========================================

What:  Gives every request a short correlation id and returns it as
       X-Request-ID.
How:   Reuses a well-formed client-supplied X-Request-ID, otherwise makes an
       8-character id from a UUID4. The id is stored in a ContextVar (read by
       the access logger and the exception handlers) and in request.state.
Who:   Applied to every request via Starlette middleware.
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Client ids end up in log lines, so only a conservative alphabet is accepted.
_CLIENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def _new_request_id() -> str:
    return str(uuid.uuid4())[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Assigns a request id.

    Behavior:
        1. Take X-Request-ID from the client if it matches _CLIENT_ID_PATTERN
        2. Otherwise generate a new short id
        3. Expose it through request_id_var and request.state.request_id
        4. Echo it in the X-Request-ID response header
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        supplied = request.headers.get("X-Request-ID", "")
        rid = supplied if _CLIENT_ID_PATTERN.match(supplied) else _new_request_id()

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
