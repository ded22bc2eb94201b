"""
SnipShare Backend: Route Dependencies
=======================================

What:  FastAPI dependency providers shared by the page and API routes.
How:   Long-lived collaborators (settings, password hasher, session store,
       quote client) are read from `request.app.state`, where create_app()
       put them.
       Database-backed services are built per request around the session
       from get_db_session; FastAPI caches that dependency, so every
       service in one request shares one AsyncSession.
"""

from typing import Optional

from fastapi import Depends, Request
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from snipshare.config import Settings
from snipshare.database import get_db_session
from snipshare.services.account_service import AccountService
from snipshare.services.identity_service import IdentityService
from snipshare.services.quote_service import QuoteService
from snipshare.services.session_store import SessionStore
from snipshare.services.snippet_service import SnippetService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_quote_service(request: Request) -> QuoteService:
    return request.app.state.quote_service


def get_password_context(request: Request) -> CryptContext:
    return request.app.state.pwd_context


def get_account_service(
    db: AsyncSession = Depends(get_db_session),
    pwd_context: CryptContext = Depends(get_password_context),
) -> AccountService:
    return AccountService(db, pwd_context)


def get_snippet_service(db: AsyncSession = Depends(get_db_session)) -> SnippetService:
    return SnippetService(db)


def get_identity_service(
    store: SessionStore = Depends(get_session_store),
    accounts: AccountService = Depends(get_account_service),
) -> IdentityService:
    return IdentityService(store, accounts)


def current_session_id(request: Request) -> Optional[str]:
    """The id SessionMiddleware resolved from the cookie, or None."""
    return getattr(request.state, "session_id", None)


def ensure_session(request: Request) -> str:
    """
    Return the request's session id, creating a session if there is none.

    SessionMiddleware sees the new id in request.state after the handler
    and sends the cookie.
    """
    session_id = current_session_id(request)
    if session_id is None:
        session_id = get_session_store(request).create()
        request.state.session_id = session_id
    return session_id


def flash(request: Request, message: str, category: str = "success") -> None:
    """Queue a one-shot notice for the next rendered page."""
    store = get_session_store(request)
    store.add_flash(ensure_session(request), message, category)
