"""
SnipShare Backend: User SQLAlchemy Model (Credential Store)
=============================================================

What:  ORM model for the `users` table.
Who:   Written by AccountService.register(); read by authenticate() and by
       the identity layer when resolving a session.

Table Design:
    - Integer primary key assigned by the database.
    - username: UNIQUE and indexed. The constraint, not the service-level
      pre-check, is what guarantees one row per username under concurrent
      registrations.
    - password_hash: bcrypt output (includes algorithm, cost and salt).
      Never exposed through any response schema.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from snipshare.database import Base


class User(Base):
    """A registered account. Never updated or deleted by any exposed operation."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Lookups are case-sensitive exact matches.
    username: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )

    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
