"""Tests for bookmark service functions (owner scoping, ordering, staged events)."""
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from models.user import User
from schemas.bookmark import BookmarkCreate, BookmarkUpdate
from schemas.change_event import ChangeKind
from services import bookmark_service
from services.change_feed import PENDING_CHANGES_KEY


def staged(db_session: AsyncSession) -> list:
    return db_session.info.get(PENDING_CHANGES_KEY, [])


# =============================================================================
# create / get / list
# =============================================================================


async def test__create_bookmark__persists_and_stages_added(
    db_session: AsyncSession, test_user: User,
) -> None:
    bookmark = await bookmark_service.create_bookmark(
        db_session, test_user.id, BookmarkCreate(title="  Docs  ", url="https://docs.example.com"),
    )

    assert bookmark.id is not None
    assert bookmark.title == "Docs"
    assert bookmark.url == "https://docs.example.com/"
    assert bookmark.user_id == test_user.id
    assert bookmark.created_at is not None

    events = staged(db_session)
    assert len(events) == 1
    assert events[0].kind == ChangeKind.ADDED
    assert events[0].owner == test_user.id
    assert events[0].record.id == bookmark.id


async def test__list_bookmarks__newest_first(
    db_session: AsyncSession, test_user: User,
) -> None:
    first = await bookmark_service.create_bookmark(
        db_session, test_user.id, BookmarkCreate(title="First", url="https://one.example.com"),
    )
    second = await bookmark_service.create_bookmark(
        db_session, test_user.id, BookmarkCreate(title="Second", url="https://two.example.com"),
    )

    bookmarks = await bookmark_service.list_bookmarks(db_session, test_user.id)

    assert [b.id for b in bookmarks] == [second.id, first.id]


async def test__list_bookmarks__empty_for_new_user(
    db_session: AsyncSession, test_user: User,
) -> None:
    assert await bookmark_service.list_bookmarks(db_session, test_user.id) == []


async def test__list_bookmarks__excludes_other_users(
    db_session: AsyncSession, test_user: User, other_user: User,
) -> None:
    mine = await bookmark_service.create_bookmark(
        db_session, test_user.id, BookmarkCreate(title="Mine", url="https://mine.example.com"),
    )
    await bookmark_service.create_bookmark(
        db_session, other_user.id, BookmarkCreate(title="Theirs", url="https://theirs.example.com"),
    )

    bookmarks = await bookmark_service.list_bookmarks(db_session, test_user.id)

    assert [b.id for b in bookmarks] == [mine.id]


async def test__get_bookmark__other_users_bookmark_is_none(
    db_session: AsyncSession, test_user: User, other_user: User,
) -> None:
    theirs = await bookmark_service.create_bookmark(
        db_session, other_user.id, BookmarkCreate(title="Theirs", url="https://theirs.example.com"),
    )

    assert await bookmark_service.get_bookmark(db_session, test_user.id, theirs.id) is None
    assert await bookmark_service.get_bookmark(db_session, other_user.id, theirs.id) is not None


# =============================================================================
# update
# =============================================================================


async def test__update_bookmark__changes_only_given_fields(
    db_session: AsyncSession, test_user: User,
) -> None:
    bookmark = await bookmark_service.create_bookmark(
        db_session, test_user.id, BookmarkCreate(title="Old", url="https://example.com"),
    )

    updated = await bookmark_service.update_bookmark(
        db_session, test_user.id, bookmark.id, BookmarkUpdate(title="New"),
    )

    assert updated is not None
    assert updated.title == "New"
    assert updated.url == "https://example.com/"

    events = staged(db_session)
    assert [e.kind for e in events] == [ChangeKind.ADDED, ChangeKind.REPLACED]
    assert events[1].record.title == "New"
    assert events[1].record.created_at == events[0].record.created_at


async def test__update_bookmark__other_user_returns_none_and_stages_nothing(
    db_session: AsyncSession, test_user: User, other_user: User,
) -> None:
    theirs = await bookmark_service.create_bookmark(
        db_session, other_user.id, BookmarkCreate(title="Theirs", url="https://theirs.example.com"),
    )
    before = len(staged(db_session))

    result = await bookmark_service.update_bookmark(
        db_session, test_user.id, theirs.id, BookmarkUpdate(title="Hijacked"),
    )

    assert result is None
    assert len(staged(db_session)) == before
    refreshed = await bookmark_service.get_bookmark(db_session, other_user.id, theirs.id)
    assert refreshed.title == "Theirs"


# =============================================================================
# delete
# =============================================================================


async def test__delete_bookmark__removes_and_stages_removed(
    db_session: AsyncSession, test_user: User,
) -> None:
    bookmark = await bookmark_service.create_bookmark(
        db_session, test_user.id, BookmarkCreate(title="Gone", url="https://example.com"),
    )

    assert await bookmark_service.delete_bookmark(db_session, test_user.id, bookmark.id) is True
    assert await bookmark_service.get_bookmark(db_session, test_user.id, bookmark.id) is None

    removed = staged(db_session)[-1]
    assert removed.kind == ChangeKind.REMOVED
    assert removed.id == bookmark.id
    assert removed.owner == test_user.id
    assert removed.record is None


async def test__delete_bookmark__missing_returns_false(
    db_session: AsyncSession, test_user: User,
) -> None:
    assert await bookmark_service.delete_bookmark(db_session, test_user.id, uuid4()) is False
    assert staged(db_session) == []


async def test__delete_bookmark__other_user_cannot_delete(
    db_session: AsyncSession, test_user: User, other_user: User,
) -> None:
    theirs = await bookmark_service.create_bookmark(
        db_session, other_user.id, BookmarkCreate(title="Theirs", url="https://theirs.example.com"),
    )

    assert await bookmark_service.delete_bookmark(db_session, test_user.id, theirs.id) is False
    assert await bookmark_service.get_bookmark(db_session, other_user.id, theirs.id) is not None


async def test__delete_user__cascades_to_bookmarks(
    db_session: AsyncSession, test_user: User,
) -> None:
    bookmark = await bookmark_service.create_bookmark(
        db_session, test_user.id, BookmarkCreate(title="Doomed", url="https://example.com"),
    )

    user_id = test_user.id
    await db_session.delete(test_user)
    await db_session.flush()

    assert await bookmark_service.get_bookmark(db_session, user_id, bookmark.id) is None
