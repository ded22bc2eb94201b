"""
SnipShare Backend: Session Cookie Middleware
==============================================

What:  Maps the session cookie to `request.state.session_id` and writes the
       cookie back after the handler runs.
How:   Before the handler: the cookie value is kept only if the SessionStore
       still knows it (unknown/expired ids become None). Routes that need a
       session create one and store the new id in request.state. After the
       handler: a new id sets the cookie, a destroyed session deletes it,
       and a live one refreshes max-age so the cookie follows the store's
       sliding expiry.
Who:   Applied to every request via Starlette middleware.

Cookie attributes:
    HttpOnly, SameSite=Lax, Path=/, Secure when SESSION_COOKIE_SECURE=true.
    The value is an opaque random token; nothing about the user is stored
    client-side.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from snipshare.services.session_store import SessionStore

logger = logging.getLogger(__name__)


class SessionMiddleware(BaseHTTPMiddleware):

    PURGE_EVERY = 500

    def __init__(
        self,
        app,
        store: SessionStore,
        cookie_name: str = "snipshare_session",
        secure: bool = False,
    ):
        super().__init__(app)
        self.store = store
        self.cookie_name = cookie_name
        self.secure = secure
        self._seen = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        incoming = request.cookies.get(self.cookie_name)
        request.state.session_id = incoming if self.store.exists(incoming) else None

        response = await call_next(request)

        outgoing = getattr(request.state, "session_id", None)
        if outgoing and self.store.exists(outgoing):
            response.set_cookie(
                self.cookie_name,
                outgoing,
                max_age=self.store.ttl_seconds,
                httponly=True,
                samesite="lax",
                secure=self.secure,
                path="/",
            )
        elif incoming:
            response.delete_cookie(
                self.cookie_name,
                httponly=True,
                samesite="lax",
                secure=self.secure,
                path="/",
            )

        self._seen += 1
        if self._seen % self.PURGE_EVERY == 0:
            self.store.purge_expired()

        return response
