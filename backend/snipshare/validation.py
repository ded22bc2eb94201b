"""
SnipShare Backend: Input Validation
=====================================

What:  One plain function per operation, each returning a list of FieldError
       (empty when the input is acceptable).
How:   No framework validators. The page adapter renders the list next to
       the form; the API adapter returns it in a 400 body; the services call
       the snippet/search checks themselves so the core enforces its own
       required fields whichever adapter called it.

Rules:
    - "Required" means present and not whitespace-only.
    - Length limits match the column sizes in the models.
    - Password length is an adapter rule (validate_registration); the
      AccountService does not re-check it.
"""

from typing import List, Optional

from snipshare.exceptions import ValidationError
from snipshare.schemas.common import FieldError

USERNAME_MAX_LENGTH = 255
TITLE_MAX_LENGTH = 255
LANGUAGE_MAX_LENGTH = 50


def is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _require(errors: List[FieldError], field: str, value: Optional[str], label: str) -> bool:
    if is_blank(value):
        errors.append(FieldError(field=field, message=f"{label} is required"))
        return False
    return True


def _max_length(
    errors: List[FieldError], field: str, value: str, label: str, limit: int
) -> None:
    if len(value) > limit:
        errors.append(
            FieldError(field=field, message=f"{label} must be at most {limit} characters")
        )


def validate_registration(
    username: Optional[str],
    password: Optional[str],
    confirm_password: Optional[str],
    min_length: int = 6,
) -> List[FieldError]:
    """Checks for POST /register (both adapters)."""
    errors: List[FieldError] = []

    if _require(errors, "username", username, "Username"):
        _max_length(errors, "username", username, "Username", USERNAME_MAX_LENGTH)

    if password is None or len(password) < min_length:
        errors.append(
            FieldError(
                field="password",
                message=f"Password must be at least {min_length} characters long",
            )
        )

    if confirm_password != password:
        errors.append(FieldError(field="confirmPassword", message="Passwords do not match"))

    return errors


def validate_login(username: Optional[str], password: Optional[str]) -> List[FieldError]:
    """Checks for POST /login (both adapters)."""
    errors: List[FieldError] = []
    _require(errors, "username", username, "Username")
    # Passwords are compared verbatim, so only emptiness counts here.
    if not password:
        errors.append(FieldError(field="password", message="Password is required"))
    return errors


def validate_snippet(
    title: Optional[str],
    code: Optional[str],
    language: Optional[str],
) -> List[FieldError]:
    """Checks shared by snippet create and update. Description is optional."""
    errors: List[FieldError] = []
    if _require(errors, "title", title, "Title"):
        _max_length(errors, "title", title, "Title", TITLE_MAX_LENGTH)
    _require(errors, "code", code, "Code")
    if _require(errors, "language", language, "Language"):
        _max_length(errors, "language", language, "Language", LANGUAGE_MAX_LENGTH)
    return errors


def validate_search(query: Optional[str]) -> List[FieldError]:
    errors: List[FieldError] = []
    _require(errors, "query", query, "Search query")
    return errors


def raise_for_errors(errors: List[FieldError], message: str = "Validation failed") -> None:
    """Raise ValidationError carrying `errors` if there are any."""
    if errors:
        raise ValidationError(message=message, errors=errors)
