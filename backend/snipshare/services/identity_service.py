"""
SnipShare Backend: Identity Service (login / current user / logout)
=====================================================================

What:  Binds a session to a user, resolves the session back to a User, and
       clears the binding.
How:   The session id is passed in explicitly by the route. Nothing here
       reads a request object or a framework context.
Who:   Page and API routes.
"""

import logging
from typing import Optional

from snipshare.exceptions import IdentityError, NotFoundError
from snipshare.models.user import User
from snipshare.services.account_service import AccountService
from snipshare.services.session_store import SessionStore

logger = logging.getLogger(__name__)


class IdentityService:

    def __init__(self, store: SessionStore, accounts: AccountService):
        self.store = store
        self.accounts = accounts

    def login(self, session_id: str, user: User) -> str:
        """
        Bind `user` to the session under a new session id and return that id.

        The old id stops resolving. Logging in again replaces the old identity.
        """
        new_session_id = self.store.rotate(session_id)
        if new_session_id is None or not self.store.bind_user(new_session_id, user.id):
            raise IdentityError(message="Session is not active")
        logger.info("Session bound to user id=%s", user.id)
        return new_session_id

    async def current_user(self, session_id: Optional[str]) -> User:
        """
        Resolve the session's user.

        Raises:
            IdentityError: No session, nobody logged in, or the bound user
                no longer exists (the stale binding is cleared).
            StoreError: Database failure while loading the user
        """
        user_id = self.store.get_user_id(session_id)
        if user_id is None:
            raise IdentityError()

        try:
            return await self.accounts.get_user(user_id)
        except NotFoundError:
            logger.warning("Session referenced missing user id=%s; clearing it", user_id)
            self.store.unbind_user(session_id)
            raise IdentityError(context={"user_id": user_id})

    async def optional_user(self, session_id: Optional[str]) -> Optional[User]:
        """current_user() that returns None instead of raising IdentityError."""
        try:
            return await self.current_user(session_id)
        except IdentityError:
            return None

    def logout(self, session_id: Optional[str]) -> None:
        """Clear the binding. Safe to call when nobody is logged in."""
        self.store.unbind_user(session_id)
