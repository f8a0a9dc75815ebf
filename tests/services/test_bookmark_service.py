"""Tests for bookmark service functions."""
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.bookmark import Bookmark, BookmarkStatus, Priority
from models.user import User
from schemas.bookmark import (
    BookmarkCreate,
    BookmarkImportItem,
    BookmarkUpdate,
    BulkAction,
    BulkOperationRequest,
)
from services import bookmark_service
from services.tag_service import get_tag_by_name


async def _create(
    db: AsyncSession,
    user: User,
    url: str,
    title: str = 'Title',
    tags: list[str] | None = None,
    priority: Priority = Priority.MEDIUM,
    description: str | None = None,
) -> Bookmark:
    return await bookmark_service.create_bookmark(
        db,
        user.id,
        BookmarkCreate(
            url=url,
            title=title,
            tags=tags or [],
            priority=priority,
            description=description,
        ),
    )


async def _reload(db: AsyncSession, bookmark_id: UUID) -> Bookmark | None:
    db.expire_all()
    result = await db.execute(select(Bookmark).where(Bookmark.id == bookmark_id))
    return result.scalar_one_or_none()


class TestCreateBookmark:
    """Tests for create_bookmark."""

    async def test__create_bookmark__starts_as_todo(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        bookmark = await _create(db_session, test_user, 'https://example.com/a', tags=['Python'])

        assert bookmark.status == BookmarkStatus.TODO
        assert bookmark.reviewed_at is None
        assert bookmark.priority == Priority.MEDIUM
        assert bookmark.tag_names == ['python']

    async def test__create_bookmark__derives_favicon(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        bookmark = await _create(db_session, test_user, 'https://www.github.com/foo')
        assert bookmark.favicon_url == (
            'https://www.google.com/s2/favicons?domain=github.com&sz=32'
        )

    async def test__create_bookmark__no_favicon_when_not_derived(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        bookmark = await bookmark_service.create_bookmark(
            db_session,
            test_user.id,
            BookmarkCreate(url='https://example.com', title='Example'),
            derive_favicon=False,
        )
        assert bookmark.favicon_url is None

    async def test__create_bookmark__duplicate_urls_allowed(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        first = await _create(db_session, test_user, 'https://example.com/a')
        second = await _create(db_session, test_user, 'https://example.com/a')
        assert first.id != second.id


class TestStatusWorkflow:
    """Tests for review status transitions and reviewed_at."""

    async def test__update_bookmark__terminal_status_stamps_reviewed_at(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        bookmark = await _create(db_session, test_user, 'https://example.com/a')

        updated = await bookmark_service.update_bookmark(
            db_session, test_user.id, bookmark.id, BookmarkUpdate(status=BookmarkStatus.REVIEWED),
        )

        assert updated.status == BookmarkStatus.REVIEWED
        assert updated.reviewed_at is not None

    async def test__update_bookmark__back_to_todo_keeps_reviewed_at(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        bookmark = await _create(db_session, test_user, 'https://example.com/a')
        await bookmark_service.update_bookmark(
            db_session, test_user.id, bookmark.id, BookmarkUpdate(status=BookmarkStatus.ARCHIVED),
        )
        stamped = bookmark.reviewed_at

        updated = await bookmark_service.update_bookmark(
            db_session, test_user.id, bookmark.id, BookmarkUpdate(status=BookmarkStatus.TODO),
        )

        assert updated.status == BookmarkStatus.TODO
        assert updated.reviewed_at == stamped

    async def test__update_bookmark__same_status_does_not_restamp(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        bookmark = await _create(db_session, test_user, 'https://example.com/a')
        await bookmark_service.update_bookmark(
            db_session, test_user.id, bookmark.id, BookmarkUpdate(status=BookmarkStatus.DISCARDED),
        )
        stamped = bookmark.reviewed_at

        await bookmark_service.update_bookmark(
            db_session, test_user.id, bookmark.id, BookmarkUpdate(status=BookmarkStatus.DISCARDED),
        )
        assert bookmark.reviewed_at == stamped

    async def test__update_bookmark__title_only_leaves_status(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        bookmark = await _create(db_session, test_user, 'https://example.com/a')

        updated = await bookmark_service.update_bookmark(
            db_session, test_user.id, bookmark.id, BookmarkUpdate(title='Renamed'),
        )

        assert updated.title == 'Renamed'
        assert updated.status == BookmarkStatus.TODO
        assert updated.reviewed_at is None

    async def test__update_bookmark__tags_replace_all(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        bookmark = await _create(db_session, test_user, 'https://example.com/a', tags=['a', 'b'])

        updated = await bookmark_service.update_bookmark(
            db_session, test_user.id, bookmark.id, BookmarkUpdate(tags=['C']),
        )

        assert updated.tag_names == ['c']
        assert await get_tag_by_name(db_session, test_user.id, 'a') is not None

    async def test__update_bookmark__other_user_returns_none(
        self,
        db_session: AsyncSession,
        test_user: User,
        other_user: User,
    ) -> None:
        bookmark = await _create(db_session, other_user, 'https://example.com/a')
        result = await bookmark_service.update_bookmark(
            db_session, test_user.id, bookmark.id, BookmarkUpdate(title='Mine now'),
        )
        assert result is None


class TestSearchBookmarks:
    """Tests for search_bookmarks."""

    async def test__search_bookmarks__todo_first_then_newest(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        oldest = await _create(db_session, test_user, 'https://example.com/1')
        reviewed = await _create(db_session, test_user, 'https://example.com/2')
        newest = await _create(db_session, test_user, 'https://example.com/3')
        await bookmark_service.update_bookmark(
            db_session, test_user.id, reviewed.id, BookmarkUpdate(status=BookmarkStatus.REVIEWED),
        )

        bookmarks, total = await bookmark_service.search_bookmarks(db_session, test_user.id)

        assert total == 3
        assert [b.id for b in bookmarks] == [newest.id, oldest.id, reviewed.id]

    async def test__search_bookmarks__text_query_matches_title_description_url(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        by_title = await _create(db_session, test_user, 'https://a.example.com', title='Python tips')
        by_desc = await _create(
            db_session, test_user, 'https://b.example.com', description='all about PYTHON',
        )
        by_url = await _create(db_session, test_user, 'https://python.org')
        await _create(db_session, test_user, 'https://c.example.com', title='Rust')

        bookmarks, total = await bookmark_service.search_bookmarks(
            db_session, test_user.id, query='python',
        )

        assert total == 3
        assert {b.id for b in bookmarks} == {by_title.id, by_desc.id, by_url.id}

    async def test__search_bookmarks__filters_combine(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        match = await _create(
            db_session, test_user, 'https://a.example.com', tags=['Work'], priority=Priority.HIGH,
        )
        await _create(db_session, test_user, 'https://b.example.com', tags=['work'])
        await _create(db_session, test_user, 'https://c.example.com', priority=Priority.HIGH)

        bookmarks, total = await bookmark_service.search_bookmarks(
            db_session,
            test_user.id,
            status=BookmarkStatus.TODO,
            priority=Priority.HIGH,
            tag='WORK',
        )

        assert total == 1
        assert bookmarks[0].id == match.id

    async def test__search_bookmarks__pagination(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        for i in range(5):
            await _create(db_session, test_user, f'https://example.com/{i}')

        page, total = await bookmark_service.search_bookmarks(
            db_session, test_user.id, offset=2, limit=2,
        )

        assert total == 5
        assert len(page) == 2

    async def test__search_bookmarks__scoped_to_user(
        self,
        db_session: AsyncSession,
        test_user: User,
        other_user: User,
    ) -> None:
        await _create(db_session, other_user, 'https://example.com/theirs')
        bookmarks, total = await bookmark_service.search_bookmarks(db_session, test_user.id)
        assert bookmarks == []
        assert total == 0


class TestDeleteBookmark:
    """Tests for delete_bookmark."""

    async def test__delete_bookmark__keeps_tags(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        bookmark = await _create(db_session, test_user, 'https://example.com/a', tags=['keep'])

        assert await bookmark_service.delete_bookmark(db_session, test_user.id, bookmark.id) is True

        assert await bookmark_service.get_bookmark(db_session, test_user.id, bookmark.id) is None
        assert await get_tag_by_name(db_session, test_user.id, 'keep') is not None

    async def test__delete_bookmark__other_user_returns_false(
        self,
        db_session: AsyncSession,
        test_user: User,
        other_user: User,
    ) -> None:
        bookmark = await _create(db_session, other_user, 'https://example.com/a')
        assert await bookmark_service.delete_bookmark(db_session, test_user.id, bookmark.id) is False


class TestBulkUpdate:
    """Tests for bulk_update."""

    async def test__bulk_update__set_priority_skips_foreign_ids(
        self,
        db_session: AsyncSession,
        test_user: User,
        other_user: User,
    ) -> None:
        mine = [await _create(db_session, test_user, f'https://example.com/{i}') for i in range(3)]
        theirs = await _create(db_session, other_user, 'https://example.com/theirs')

        affected = await bookmark_service.bulk_update(
            db_session,
            test_user.id,
            BulkOperationRequest(
                bookmark_ids=[b.id for b in mine] + [theirs.id],
                action=BulkAction.SET_PRIORITY,
                value='low',
            ),
        )

        assert affected == 3
        for bookmark in mine:
            assert (await _reload(db_session, bookmark.id)).priority == Priority.LOW
        assert (await _reload(db_session, theirs.id)).priority == Priority.MEDIUM

    async def test__bulk_update__archive_stamps_reviewed_at(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        bookmark = await _create(db_session, test_user, 'https://example.com/a')

        affected = await bookmark_service.bulk_update(
            db_session,
            test_user.id,
            BulkOperationRequest(bookmark_ids=[bookmark.id], action=BulkAction.ARCHIVE),
        )

        reloaded = await _reload(db_session, bookmark.id)
        assert affected == 1
        assert reloaded.status == BookmarkStatus.ARCHIVED
        assert reloaded.reviewed_at is not None

    async def test__bulk_update__same_status_keeps_reviewed_at(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        bookmark = await _create(db_session, test_user, 'https://example.com/a')
        await bookmark_service.update_bookmark(
            db_session, test_user.id, bookmark.id, BookmarkUpdate(status=BookmarkStatus.REVIEWED),
        )
        stamped = (await _reload(db_session, bookmark.id)).reviewed_at

        await bookmark_service.bulk_update(
            db_session,
            test_user.id,
            BulkOperationRequest(bookmark_ids=[bookmark.id], action=BulkAction.MARK_REVIEWED),
        )

        assert (await _reload(db_session, bookmark.id)).reviewed_at == stamped

    async def test__bulk_update__add_tag_counts_every_owned_bookmark(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        tagged = await _create(db_session, test_user, 'https://example.com/a', tags=['later'])
        untagged = await _create(db_session, test_user, 'https://example.com/b')

        affected = await bookmark_service.bulk_update(
            db_session,
            test_user.id,
            BulkOperationRequest(
                bookmark_ids=[tagged.id, untagged.id],
                action=BulkAction.ADD_TAG,
                value='Later',
            ),
        )

        assert affected == 2
        db_session.expire_all()
        refreshed = await bookmark_service.get_bookmark(db_session, test_user.id, untagged.id)
        assert refreshed.tag_names == ['later']

    async def test__bulk_update__remove_tag(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        tagged = await _create(db_session, test_user, 'https://example.com/a', tags=['old', 'keep'])
        untagged = await _create(db_session, test_user, 'https://example.com/b')

        affected = await bookmark_service.bulk_update(
            db_session,
            test_user.id,
            BulkOperationRequest(
                bookmark_ids=[tagged.id, untagged.id],
                action=BulkAction.REMOVE_TAG,
                value='old',
            ),
        )

        assert affected == 1
        db_session.expire_all()
        refreshed = await bookmark_service.get_bookmark(db_session, test_user.id, tagged.id)
        assert refreshed.tag_names == ['keep']

    async def test__bulk_update__remove_unknown_tag_affects_nothing(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        bookmark = await _create(db_session, test_user, 'https://example.com/a')
        affected = await bookmark_service.bulk_update(
            db_session,
            test_user.id,
            BulkOperationRequest(
                bookmark_ids=[bookmark.id],
                action=BulkAction.REMOVE_TAG,
                value='nope',
            ),
        )
        assert affected == 0

    async def test__bulk_update__delete_only_owned(
        self,
        db_session: AsyncSession,
        test_user: User,
        other_user: User,
    ) -> None:
        mine = await _create(db_session, test_user, 'https://example.com/a', tags=['x'])
        theirs = await _create(db_session, other_user, 'https://example.com/b')

        affected = await bookmark_service.bulk_update(
            db_session,
            test_user.id,
            BulkOperationRequest(bookmark_ids=[mine.id, theirs.id], action=BulkAction.DELETE),
        )

        assert affected == 1
        assert await _reload(db_session, mine.id) is None
        assert await _reload(db_session, theirs.id) is not None
        assert await get_tag_by_name(db_session, test_user.id, 'x') is not None


class TestImportBookmarks:
    """Tests for import_bookmarks."""

    async def test__import_bookmarks__imports_skips_and_tags_folder(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        await _create(db_session, test_user, 'https://example.com/existing')

        result = await bookmark_service.import_bookmarks(
            db_session,
            test_user.id,
            [
                BookmarkImportItem(
                    url='https://example.com/new',
                    title='New',
                    tags=['Reading'],
                    folder='Tech News',
                ),
                BookmarkImportItem(url='https://example.com/existing', title='Existing'),
            ],
        )

        assert result.imported == 1
        assert result.skipped == 1
        assert result.errors == []
        assert [d.status for d in result.details] == ['imported', 'skipped']
        assert result.details[1].reason == 'URL already exists'
        assert result.summary == 'Imported 1 bookmark(s), skipped 1, 0 error(s)'

        bookmarks, _ = await bookmark_service.search_bookmarks(
            db_session, test_user.id, query='/new',
        )
        assert bookmarks[0].tag_names == ['reading', 'tech news']
        assert bookmarks[0].status == BookmarkStatus.TODO

    async def test__import_bookmarks__bad_item_does_not_stop_batch(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        items = [
            BookmarkImportItem(url='https://example.com/1', title='One'),
            BookmarkImportItem(url='https://example.com/2', title='Two', tags=['x' * 60]),
            BookmarkImportItem(url='https://example.com/3', title='Three'),
        ]

        result = await bookmark_service.import_bookmarks(
            db_session, test_user.id, items, batch_size=2,
        )

        assert result.imported == 2
        assert len(result.errors) == 1
        assert result.errors[0].startswith('Two:')
        assert [d.status for d in result.details] == ['imported', 'error', 'imported']


class TestGetStats:
    """Tests for get_stats."""

    async def test__get_stats__counts(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        high = await _create(
            db_session, test_user, 'https://example.com/1', tags=['a', 'b'], priority=Priority.HIGH,
        )
        await _create(db_session, test_user, 'https://example.com/2', tags=['a'])
        reviewed = await _create(db_session, test_user, 'https://example.com/3')
        discarded = await _create(db_session, test_user, 'https://example.com/4')
        for bookmark, status in [
            (reviewed, BookmarkStatus.REVIEWED),
            (discarded, BookmarkStatus.DISCARDED),
        ]:
            await bookmark_service.update_bookmark(
                db_session, test_user.id, bookmark.id, BookmarkUpdate(status=status),
            )

        stats = await bookmark_service.get_stats(db_session, test_user.id)

        assert stats.overview.total_bookmarks == 4
        assert stats.overview.todo_count == 2
        assert stats.overview.reviewed_count == 1
        assert stats.overview.discarded_count == 1
        assert stats.overview.archived_count == 0
        assert stats.overview.processed_count == 2
        assert stats.overview.productivity_rate == 50
        assert stats.overview.total_tags == 2
        assert stats.breakdown.priority == {'HIGH': 1, 'MEDIUM': 1, 'LOW': 0}
        assert len(stats.recent_bookmarks) == 4
        assert [(t.name, t.count) for t in stats.top_tags] == [('a', 2), ('b', 1)]
        assert high.id in {b.id for b in stats.recent_bookmarks}

    async def test__get_stats__empty(
        self,
        db_session: AsyncSession,
        test_user: User,
    ) -> None:
        stats = await bookmark_service.get_stats(db_session, test_user.id)
        assert stats.overview.total_bookmarks == 0
        assert stats.overview.productivity_rate == 0
        assert stats.top_tags == []
