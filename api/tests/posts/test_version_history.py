"""
Tests for reading, comparing and restoring post versions.
"""

import uuid

import pytest

from publishing.errors import NotFoundError
from publishing.models import PostStatus
from publishing.schemas.posts import PostUpdate
from publishing.services.cache import RecordingInvalidationSink
from publishing.services.posts import PostLifecycleManager


@pytest.fixture
def edited_post(make_post, manager: PostLifecycleManager):
    """A post with three versions: the draft, a retitle, and a content rewrite."""

    async def _edited_post(**overrides):
        post = await make_post(content="line one\nline two", **overrides)
        await manager.update(post.id, PostUpdate(title="Retitled"))
        await manager.update(post.id, PostUpdate(content="line one\nline three\nline four"))
        return post

    return _edited_post


class TestListAndGetVersions:
    async def test_list_is_newest_first(self, manager: PostLifecycleManager, edited_post):
        post = await edited_post()

        versions = await manager.list_versions(post.id)

        assert [v.version for v in versions] == [3, 2, 1]
        assert versions[-1].title == "Hello World"

    async def test_get_single_version(self, manager: PostLifecycleManager, edited_post):
        post = await edited_post()

        snapshot = await manager.get_version(post.id, 2)

        assert snapshot.title == "Retitled"
        assert snapshot.content == "line one\nline two"

    async def test_unknown_version_raises_not_found(
        self, manager: PostLifecycleManager, make_post
    ):
        post = await make_post()

        with pytest.raises(NotFoundError):
            await manager.get_version(post.id, 2)

    async def test_unknown_post_raises_not_found(self, manager: PostLifecycleManager):
        with pytest.raises(NotFoundError):
            await manager.list_versions(uuid.uuid4())


class TestCompareVersions:
    async def test_compare_reports_title_and_line_changes(
        self, manager: PostLifecycleManager, edited_post
    ):
        post = await edited_post()

        diff = await manager.compare_versions(post.id, 1, 3)

        assert diff.title_changed is True
        assert diff.content_changes.added == 2
        assert diff.content_changes.removed == 1
        assert diff.summary == "title changed; content: +2 / -1 lines"

    async def test_compare_with_missing_version(
        self, manager: PostLifecycleManager, edited_post
    ):
        post = await edited_post()

        with pytest.raises(NotFoundError):
            await manager.compare_versions(post.id, 1, 9)


class TestRestoreVersion:
    async def test_restore_appends_new_version(
        self, manager: PostLifecycleManager, edited_post
    ):
        post = await edited_post()

        restored = await manager.restore_version(post.id, 1)

        assert restored.title == "Hello World"
        assert restored.content == "line one\nline two"
        assert restored.current_version == 4

        versions = await manager.list_versions(post.id)
        assert [v.version for v in versions] == [4, 3, 2, 1]
        assert versions[0].content == versions[-1].content

    async def test_restore_unknown_version_changes_nothing(
        self, manager: PostLifecycleManager, edited_post
    ):
        post_id = (await edited_post()).id

        with pytest.raises(NotFoundError):
            await manager.restore_version(post_id, 42)

        post = await manager.get_post(post_id)
        assert post.current_version == 3
        assert post.title == "Retitled"

    async def test_restore_published_post_invalidates(
        self, manager: PostLifecycleManager, edited_post, sink: RecordingInvalidationSink
    ):
        post = await edited_post(status=PostStatus.PUBLISHED)
        sink.reset()

        await manager.restore_version(post.id, 1)

        assert sink.calls == [["/", "/posts/hello-world"]]

    async def test_restore_missing_post(self, manager: PostLifecycleManager):
        with pytest.raises(NotFoundError):
            await manager.restore_version(uuid.uuid4(), 1)
