"""
SnipShare Backend: Account Service (Registration & Authentication)
===================================================================

What:  Creates users and checks credentials against the `users` table.
How:   bcrypt via snipshare.security; SQLAlchemy async queries against the
       session handed in by the caller.
Who:   Page and API routes (register/login); IdentityService (get_user).
When:  Constructed per request around that request's AsyncSession.

Flow (register):
    ┌────────────┐    ┌─────────────┐    ┌──────────┐    ┌──────────┐
    │  Validate  │───▶│  Pre-check  │───▶│  bcrypt  │───▶│  INSERT  │
    │  (inputs)  │    │  (username) │    │  (hash)  │    │  + COMMIT│
    └────────────┘    └─────────────┘    └──────────┘    └──────────┘

    The pre-check only produces a friendlier error sooner. Two concurrent
    registrations can both pass it; the UNIQUE constraint on
    users.username rejects the second insert, and that IntegrityError is
    reported as the same ConflictError.
"""

import logging
from typing import Optional

from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from snipshare.exceptions import AuthError, ConflictError, NotFoundError, StoreError
from snipshare.models.user import User
from snipshare.schemas.common import FieldError
from snipshare.security import dummy_verify, hash_password, verify_password
from snipshare.validation import is_blank, raise_for_errors

logger = logging.getLogger(__name__)


class AccountService:
    """
    Registration and credential checks.

    Error Handling Strategy:
        Domain outcomes (ValidationError, ConflictError, AuthError,
        NotFoundError) propagate as-is. Anything SQLAlchemy raises is logged
        with its traceback and re-raised as StoreError, whose message is
        generic.
    """

    def __init__(self, db: AsyncSession, pwd_context: Optional[CryptContext] = None):
        self.db = db
        # None falls back to the context built from the environment settings.
        self.pwd_context = pwd_context

    async def register(
        self,
        username: Optional[str],
        password: Optional[str],
        confirm_password: Optional[str],
    ) -> None:
        """
        Create a user with a bcrypt-hashed password.

        Args:
            username: Exact username to register (case-sensitive)
            password: Plain-text password (length checked by the adapters)
            confirm_password: Must equal password

        Raises:
            ValidationError: Empty username or passwords that do not match
            ConflictError: Username already taken
            StoreError: Database failure
        """
        errors = []
        if is_blank(username):
            errors.append(FieldError(field="username", message="Username is required"))
        if password is None or confirm_password != password:
            errors.append(FieldError(field="confirmPassword", message="Passwords do not match"))
        raise_for_errors(errors, message="Registration details are invalid")

        if await self._find_by_username(username) is not None:
            logger.info("Registration rejected: username already exists")
            raise ConflictError(message="Username already exists")

        user = User(username=username, password_hash=hash_password(password, self.pwd_context))
        try:
            self.db.add(user)
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration of the same name.
            await self.db.rollback()
            logger.info("Registration rejected by UNIQUE constraint")
            raise ConflictError(message="Username already exists")
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Database error registering user: %s", str(e), exc_info=True)
            raise StoreError(context={"operation": "register"})

        logger.info("User registered: id=%s", user.id)

    async def authenticate(self, username: Optional[str], password: Optional[str]) -> User:
        """
        Check a username/password pair and return the matching User.

        The two AuthError messages ("Incorrect username", "Incorrect
        password") are for logs and tests. Routes answer both with the same
        generic response so clients cannot tell which usernames exist.

        Raises:
            AuthError: Unknown username or wrong password
            StoreError: Database failure
        """
        user = await self._find_by_username(username or "")

        if user is None:
            # Keep timing comparable to the wrong-password path.
            dummy_verify(self.pwd_context)
            logger.info("Login failed: unknown username")
            raise AuthError(message="Incorrect username")

        if not verify_password(password or "", user.password_hash, self.pwd_context):
            logger.info("Login failed: wrong password for user id=%s", user.id)
            raise AuthError(message="Incorrect password", context={"user_id": user.id})

        logger.info("Login succeeded: user id=%s", user.id)
        return user

    async def get_user(self, user_id: int) -> User:
        """
        Fetch a user by primary key.

        Raises:
            NotFoundError: No user with that id
            StoreError: Database failure
        """
        try:
            user = await self.db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching user %s: %s", user_id, str(e), exc_info=True)
            raise StoreError(context={"operation": "get_user", "user_id": user_id})

        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return user

    async def _find_by_username(self, username: str) -> Optional[User]:
        try:
            result = await self.db.execute(select(User).where(User.username == username))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error looking up username: %s", str(e), exc_info=True)
            raise StoreError(context={"operation": "find_by_username"})
