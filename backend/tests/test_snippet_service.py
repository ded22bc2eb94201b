"""
SnipShare Backend: Snippet Service Tests
==========================================

What:  Snippet CRUD, search and listing against an in-memory SQLite store.

What we test:
    ✅ create → get_by_id round trip, with and without an owner; descriptions
       (even empty ones) come back exactly as stored
    ✅ update replaces fields, keeps owner and created_at; unknown id → NotFoundError
    ✅ delete then get → NotFoundError; unknown id → NotFoundError
    ✅ search is a case-insensitive literal substring match on the title
    ✅ list_snippets is newest first
    ✅ removing a user clears ownership instead of deleting snippets
    ✅ SQLAlchemy errors surface as StoreError
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError

from snipshare.exceptions import NotFoundError, StoreError, ValidationError
from snipshare.models.snippet import Snippet
from snipshare.models.user import User
from snipshare.services.account_service import AccountService
from snipshare.services.snippet_service import SnippetService


async def make_user(db_session, username="alice"):
    accounts = AccountService(db_session)
    await accounts.register(username, "secret1", "secret1")
    return await accounts.authenticate(username, "secret1")


class TestCreateAndGet:

    @pytest.mark.asyncio
    async def test_anonymous_snippet(self, db_session):
        service = SnippetService(db_session)
        snippet_id = await service.create("Hello", "print(1)", None, "python")

        snippet = await service.get_by_id(snippet_id)
        assert snippet.id == snippet_id
        assert snippet.title == "Hello"
        assert snippet.code == "print(1)"
        assert snippet.description is None
        assert snippet.language == "python"
        assert snippet.user_id is None
        assert snippet.username is None
        assert snippet.created_at is not None

    @pytest.mark.asyncio
    async def test_owned_snippet_carries_username(self, db_session):
        alice = await make_user(db_session)
        service = SnippetService(db_session)

        snippet_id = await service.create(
            "Fizzbuzz", "for i in range(100): ...", "Classic", "python", owner_id=alice.id
        )
        snippet = await service.get_by_id(snippet_id)
        assert snippet.user_id == alice.id
        assert snippet.username == "alice"
        assert snippet.description == "Classic"

    @pytest.mark.asyncio
    async def test_empty_description_is_kept(self, db_session):
        service = SnippetService(db_session)
        snippet_id = await service.create("T", "c", "", "py")

        assert (await service.get_by_id(snippet_id)).description == ""

        await service.update(snippet_id, "T", "c", "   ", "py")
        assert (await service.get_by_id(snippet_id)).description == "   "

    @pytest.mark.asyncio
    async def test_ids_are_distinct(self, db_session):
        service = SnippetService(db_session)
        first = await service.create("a", "1", None, "x")
        second = await service.create("b", "2", None, "x")
        assert first != second

    @pytest.mark.asyncio
    async def test_required_fields(self, db_session):
        service = SnippetService(db_session)
        with pytest.raises(ValidationError) as exc_info:
            await service.create("  ", "", None, None)
        assert [e.field for e in exc_info.value.errors] == ["title", "code", "language"]

        assert await service.list_snippets() == []

    @pytest.mark.asyncio
    async def test_unknown_id(self, db_session):
        with pytest.raises(NotFoundError) as exc_info:
            await SnippetService(db_session).get_by_id(12345)
        assert exc_info.value.message == "Snippet with ID '12345' was not found"


class TestUpdate:

    @pytest.mark.asyncio
    async def test_update_replaces_fields_and_keeps_created_at(self, db_session):
        alice = await make_user(db_session)
        service = SnippetService(db_session)
        snippet_id = await service.create("Old", "x = 1", "first", "python", owner_id=alice.id)
        before = await service.get_by_id(snippet_id)

        await service.update(snippet_id, "New", "x = 2", None, "py3")

        after = await service.get_by_id(snippet_id)
        assert after.title == "New"
        assert after.code == "x = 2"
        assert after.description is None
        assert after.language == "py3"
        assert after.user_id == alice.id
        # SQLite drops tzinfo on the way back; the instant itself must not move.
        assert after.created_at.replace(tzinfo=None) == before.created_at.replace(tzinfo=None)

    @pytest.mark.asyncio
    async def test_update_unknown_id_changes_nothing(self, db_session):
        service = SnippetService(db_session)
        snippet_id = await service.create("Keep", "x", None, "python")

        with pytest.raises(NotFoundError):
            await service.update(snippet_id + 100, "Changed", "y", None, "python")

        assert (await service.get_by_id(snippet_id)).title == "Keep"
        assert len(await service.list_snippets()) == 1

    @pytest.mark.asyncio
    async def test_update_validates_before_touching_store(self, db_session):
        service = SnippetService(db_session)
        snippet_id = await service.create("Keep", "x", None, "python")

        with pytest.raises(ValidationError):
            await service.update(snippet_id, "", "y", None, "python")
        assert (await service.get_by_id(snippet_id)).title == "Keep"


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_then_get(self, db_session):
        service = SnippetService(db_session)
        snippet_id = await service.create("Gone soon", "x", None, "python")

        await service.delete(snippet_id)

        with pytest.raises(NotFoundError):
            await service.get_by_id(snippet_id)

    @pytest.mark.asyncio
    async def test_delete_unknown_id(self, db_session):
        with pytest.raises(NotFoundError):
            await SnippetService(db_session).delete(42)

    @pytest.mark.asyncio
    async def test_delete_twice(self, db_session):
        service = SnippetService(db_session)
        snippet_id = await service.create("Once", "x", None, "python")
        await service.delete(snippet_id)
        with pytest.raises(NotFoundError):
            await service.delete(snippet_id)


class TestSearchAndList:

    @pytest.mark.asyncio
    async def test_case_insensitive_substring(self, db_session):
        service = SnippetService(db_session)
        await service.create("Foo bar", "1", None, "python")
        await service.create("my FOOD", "2", None, "python")
        await service.create("Unrelated", "3", None, "python")

        titles = sorted(s.title for s in await service.search("foo"))
        assert titles == ["Foo bar", "my FOOD"]

    @pytest.mark.asyncio
    async def test_no_match_is_empty_list(self, db_session):
        service = SnippetService(db_session)
        await service.create("Hello", "1", None, "python")
        assert await service.search("zzz") == []

    @pytest.mark.asyncio
    async def test_wildcards_are_literal(self, db_session):
        service = SnippetService(db_session)
        await service.create("100% coverage", "1", None, "python")
        await service.create("1000 tests", "2", None, "python")
        await service.create("snake_case", "3", None, "python")
        await service.create("snakeXcase", "4", None, "python")

        assert [s.title for s in await service.search("100%")] == ["100% coverage"]
        assert [s.title for s in await service.search("e_c")] == ["snake_case"]

    @pytest.mark.asyncio
    async def test_search_includes_username(self, db_session):
        alice = await make_user(db_session)
        service = SnippetService(db_session)
        await service.create("Owned", "1", None, "python", owner_id=alice.id)

        [result] = await service.search("own")
        assert result.username == "alice"

    @pytest.mark.asyncio
    async def test_blank_query_rejected(self, db_session):
        with pytest.raises(ValidationError):
            await SnippetService(db_session).search("   ")

    @pytest.mark.asyncio
    async def test_list_is_newest_first(self, db_session):
        service = SnippetService(db_session)
        ids = [await service.create(f"s{i}", "x", None, "python") for i in range(3)]

        # Spread the timestamps so ordering does not depend on clock resolution.
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for offset, snippet_id in enumerate(ids):
            await db_session.execute(
                update(Snippet)
                .where(Snippet.id == snippet_id)
                .values(created_at=base + timedelta(days=offset))
            )
        await db_session.commit()

        assert [s.title for s in await service.list_snippets()] == ["s2", "s1", "s0"]


class TestOwnership:

    @pytest.mark.asyncio
    async def test_removing_owner_clears_reference(self, database, db_session):
        alice = await make_user(db_session)
        snippet_id = await SnippetService(db_session).create(
            "Orphan", "x", None, "python", owner_id=alice.id
        )

        await db_session.delete(await db_session.get(User, alice.id))
        await db_session.commit()

        async with database.session_factory() as fresh:
            snippet = await SnippetService(fresh).get_by_id(snippet_id)
            assert snippet.title == "Orphan"
            assert snippet.user_id is None
            assert snippet.username is None

            remaining = await fresh.execute(select(Snippet))
            assert len(remaining.scalars().all()) == 1


class TestStoreErrors:

    @pytest.mark.asyncio
    async def test_read_failure(self, mock_db_session):
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))
        service = SnippetService(mock_db_session)

        with pytest.raises(StoreError):
            await service.get_by_id(1)
        with pytest.raises(StoreError):
            await service.list_snippets()
        with pytest.raises(StoreError):
            await service.search("foo")

    @pytest.mark.asyncio
    async def test_write_failure_rolls_back(self, mock_db_session):
        mock_db_session.commit.side_effect = OperationalError("INSERT", {}, Exception("down"))

        with pytest.raises(StoreError):
            await SnippetService(mock_db_session).create("t", "c", None, "python")
        mock_db_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_failure(self, mock_db_session):
        mock_db_session.execute.side_effect = OperationalError("DELETE", {}, Exception("down"))
        with pytest.raises(StoreError):
            await SnippetService(mock_db_session).delete(1)
