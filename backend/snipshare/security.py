"""
SnipShare Backend: Password Hashing
=====================================

What:  bcrypt hashing and verification through passlib's CryptContext.
How:   create_password_context() builds a context for a given cost factor.
       create_app() builds one from its Settings.bcrypt_rounds and stores it
       on app.state; routes hand it to AccountService. The module-level
       `pwd_context` (from the environment-loaded settings) is only the
       fallback for services constructed without one.
       bcrypt generates a per-hash salt and embeds it, with the cost, in the
       output, so existing hashes keep verifying after the cost is changed.
Who:   AccountService.register() and AccountService.authenticate().
"""

from typing import Optional

from passlib.context import CryptContext

from snipshare.config import settings


def create_password_context(rounds: int) -> CryptContext:
    """A bcrypt CryptContext hashing at cost factor `rounds`."""
    return CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__rounds=rounds,
    )


pwd_context = create_password_context(settings.bcrypt_rounds)


def hash_password(password: str, context: Optional[CryptContext] = None) -> str:
    """Hash a password with bcrypt (random salt, configured cost)."""
    return (context or pwd_context).hash(password)


def verify_password(
    plain_password: str,
    hashed_password: str,
    context: Optional[CryptContext] = None,
) -> bool:
    """Verify a password against a stored hash using constant-time comparison."""
    return (context or pwd_context).verify(plain_password, hashed_password)


def dummy_verify(context: Optional[CryptContext] = None) -> None:
    """
    Spend the same time as a real verification without a stored hash.

    Used when the username does not exist so response timing does not tell
    the caller which half of the credentials was wrong.
    """
    (context or pwd_context).dummy_verify()
