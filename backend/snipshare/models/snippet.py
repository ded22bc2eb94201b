"""
SnipShare Backend: Snippet SQLAlchemy Model (Snippet Store)
=============================================================

What:  ORM model for the `snippets` table.
Who:   Used by SnippetService for create/read/update/delete/search/list.

Table Design:
    - user_id: nullable FK to users.id with ON DELETE SET NULL. Anonymous
      submissions have no owner; removing a user clears ownership instead of
      deleting that user's snippets.
    - code / description: TEXT, no length limit.
    - language: free-form label (not checked against a known list).
    - created_at: UTC with timezone, written once at insert and never touched
      by updates.

    Index on created_at DESC serves the "all snippets, newest first" listing.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from snipshare.database import Base


class Snippet(Base):
    """
    A shared piece of code.

    Lifecycle:
        1. Created by submission (owner = current user, or none)
        2. Title/code/description/language replaced in place by update
        3. Removed by explicit delete
    """

    __tablename__ = "snippets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        default=None,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    code: Mapped[str] = mapped_column(Text, nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)

    language: Mapped[str] = mapped_column(String(50), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    __table_args__ = (
        Index("idx_snippets_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<Snippet(id={self.id}, title='{self.title}', "
            f"language='{self.language}', user_id={self.user_id})>"
        )
