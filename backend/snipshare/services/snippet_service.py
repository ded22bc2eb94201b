"""
SnipShare Backend: Snippet Service (Business Logic)
=====================================================

What:  Create, read, update, delete, search and list snippets.
How:   SQLAlchemy 2.0 async queries. Every read joins the owner's username
       (LEFT OUTER JOIN users, so anonymous snippets keep username=None).
       Update and delete are single UPDATE/DELETE statements whose
       rowcount tells us whether the id existed.
Who:   Page and API routes.
When:  Constructed per request around that request's AsyncSession.

Query plans:
    get_by_id:      PK lookup on snippets.id + users.id join
    search:         WHERE lower(title) LIKE lower('%' || :q || '%') ESCAPE '/'
                    (sequential scan; fine at this scale)
    list_snippets:  ORDER BY created_at DESC → idx_snippets_created_at

Design Decision:
    Ownership is recorded but not enforced. Any caller may update or delete
    any snippet, matching the behaviour of the site's existing API.
"""

import logging
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from snipshare.exceptions import NotFoundError, StoreError
from snipshare.models.snippet import Snippet
from snipshare.models.user import User
from snipshare.schemas.snippet import SnippetResponse
from snipshare.validation import raise_for_errors, validate_search, validate_snippet

logger = logging.getLogger(__name__)


def _to_response(snippet: Snippet, username: Optional[str]) -> SnippetResponse:
    return SnippetResponse(
        id=snippet.id,
        user_id=snippet.user_id,
        username=username,
        title=snippet.title,
        code=snippet.code,
        description=snippet.description,
        language=snippet.language,
        created_at=snippet.created_at,
    )


class SnippetService:
    """
    Snippet persistence.

    Error Handling Strategy:
        ValidationError and NotFoundError propagate unchanged. SQLAlchemy
        errors are rolled back, logged with traceback and re-raised as
        StoreError (generic message, no SQL in the response).
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def _joined_select(self):
        return select(Snippet, User.username).outerjoin(User, Snippet.user_id == User.id)

    async def create(
        self,
        title: Optional[str],
        code: Optional[str],
        description: Optional[str],
        language: Optional[str],
        owner_id: Optional[int] = None,
    ) -> int:
        """
        Insert a snippet and return its id.

        Args:
            title, code, language: Required, non-blank
            description: Optional; stored exactly as given (None is NULL)
            owner_id: Current user's id, or None for an anonymous submission

        Raises:
            ValidationError: A required field is missing or too long
            StoreError: Database failure
        """
        raise_for_errors(validate_snippet(title, code, language), message="Snippet is invalid")

        snippet = Snippet(
            user_id=owner_id,
            title=title,
            code=code,
            description=description,
            language=language,
        )
        try:
            self.db.add(snippet)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Database error creating snippet: %s", str(e), exc_info=True)
            raise StoreError(context={"operation": "create_snippet"})

        logger.info("Snippet %s created (owner=%s, language=%s)", snippet.id, owner_id, language)
        return snippet.id

    async def get_by_id(self, snippet_id: int) -> SnippetResponse:
        """
        Fetch one snippet with its owner's username.

        Raises:
            NotFoundError: No snippet with that id (→ 404)
            StoreError: Database failure (→ 500)
        """
        try:
            result = await self.db.execute(
                self._joined_select().where(Snippet.id == snippet_id)
            )
            row = result.first()
        except SQLAlchemyError as e:
            logger.error("Database error fetching snippet %s: %s", snippet_id, str(e), exc_info=True)
            raise StoreError(context={"operation": "get_snippet", "snippet_id": snippet_id})

        if row is None:
            raise NotFoundError(resource="snippet", resource_id=str(snippet_id))
        snippet, username = row
        return _to_response(snippet, username)

    async def update(
        self,
        snippet_id: int,
        title: Optional[str],
        code: Optional[str],
        description: Optional[str],
        language: Optional[str],
    ) -> None:
        """
        Replace title, code, description and language in place.

        Owner and created_at are never touched.

        Raises:
            ValidationError: Same rules as create()
            NotFoundError: No row matched snippet_id
            StoreError: Database failure
        """
        raise_for_errors(validate_snippet(title, code, language), message="Snippet is invalid")

        try:
            result = await self.db.execute(
                update(Snippet)
                .where(Snippet.id == snippet_id)
                .values(
                    title=title,
                    code=code,
                    description=description,
                    language=language,
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Database error updating snippet %s: %s", snippet_id, str(e), exc_info=True)
            raise StoreError(context={"operation": "update_snippet", "snippet_id": snippet_id})

        if result.rowcount == 0:
            raise NotFoundError(resource="snippet", resource_id=str(snippet_id))
        logger.info("Snippet %s updated", snippet_id)

    async def delete(self, snippet_id: int) -> None:
        """
        Remove a snippet.

        Raises:
            NotFoundError: No row matched snippet_id
            StoreError: Database failure
        """
        try:
            result = await self.db.execute(delete(Snippet).where(Snippet.id == snippet_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Database error deleting snippet %s: %s", snippet_id, str(e), exc_info=True)
            raise StoreError(context={"operation": "delete_snippet", "snippet_id": snippet_id})

        if result.rowcount == 0:
            raise NotFoundError(resource="snippet", resource_id=str(snippet_id))
        logger.info("Snippet %s deleted", snippet_id)

    async def search(self, query: Optional[str]) -> List[SnippetResponse]:
        """
        Snippets whose title contains `query`, ignoring case.

        The query is matched literally: '%' and '_' are escaped, so
        searching for "100%" does not act as a wildcard. No ordering is
        promised. An empty list is a normal result.

        Raises:
            ValidationError: Blank query
            StoreError: Database failure
        """
        raise_for_errors(validate_search(query), message="Search query is required")

        try:
            result = await self.db.execute(
                self._joined_select().where(Snippet.title.icontains(query, autoescape=True))
            )
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error("Database error searching snippets: %s", str(e), exc_info=True)
            raise StoreError(context={"operation": "search_snippets"})

        logger.debug("Search matched %d snippets", len(rows))
        return [_to_response(snippet, username) for snippet, username in rows]

    async def list_snippets(self) -> List[SnippetResponse]:
        """All snippets, newest first."""
        try:
            result = await self.db.execute(
                self._joined_select().order_by(Snippet.created_at.desc(), Snippet.id.desc())
            )
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error("Database error listing snippets: %s", str(e), exc_info=True)
            raise StoreError(context={"operation": "list_snippets"})

        return [_to_response(snippet, username) for snippet, username in rows]
