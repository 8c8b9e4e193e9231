"""
Tests for PostLifecycleManager.delete.
"""

import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from publishing.errors import NotFoundError
from publishing.models import Category, Post, PostStatus, PostTag, PostVersion, Tag
from publishing.schemas.posts import PostUpdate
from publishing.services.cache import RecordingInvalidationSink
from publishing.services.posts import PostLifecycleManager


async def _count(db_session: AsyncSession, model, post_id) -> int:
    return await db_session.scalar(
        select(func.count()).select_from(model).where(model.post_id == post_id)
    )


class TestDeletePost:
    async def test_delete_removes_post_versions_and_tags(
        self,
        manager: PostLifecycleManager,
        make_post,
        tags: list[Tag],
        db_session: AsyncSession,
    ):
        post_id = (await make_post(tag_ids=[t.id for t in tags])).id
        await manager.update(post_id, PostUpdate(content="second"))

        await manager.delete(post_id)

        assert await db_session.scalar(select(Post).where(Post.id == post_id)) is None
        assert await _count(db_session, PostVersion, post_id) == 0
        assert await _count(db_session, PostTag, post_id) == 0

    async def test_delete_leaves_tags_themselves(
        self,
        manager: PostLifecycleManager,
        make_post,
        tags: list[Tag],
        db_session: AsyncSession,
    ):
        post_id = (await make_post(tag_ids=[tags[0].id])).id

        await manager.delete(post_id)

        assert await db_session.scalar(select(func.count()).select_from(Tag)) == 3

    async def test_delete_leaves_other_posts(
        self, manager: PostLifecycleManager, make_post, db_session: AsyncSession
    ):
        keep_id = (await make_post(slug="keep-me")).id
        drop_id = (await make_post(slug="drop-me")).id

        await manager.delete(drop_id)

        assert (await manager.get_post(keep_id)).slug == "keep-me"
        assert await _count(db_session, PostVersion, keep_id) == 1

    async def test_missing_post_raises_not_found(self, manager: PostLifecycleManager):
        with pytest.raises(NotFoundError):
            await manager.delete(uuid.uuid4())

    async def test_get_after_delete_raises_not_found(
        self, manager: PostLifecycleManager, make_post
    ):
        post_id = (await make_post()).id
        await manager.delete(post_id)

        with pytest.raises(NotFoundError):
            await manager.get_post(post_id)


class TestDeleteInvalidation:
    async def test_draft_delete_emits_nothing(
        self, manager: PostLifecycleManager, make_post, sink: RecordingInvalidationSink
    ):
        post = await make_post()

        await manager.delete(post.id)

        assert sink.calls == []

    async def test_published_delete_invalidates_public_pages(
        self,
        manager: PostLifecycleManager,
        make_post,
        category: Category,
        sink: RecordingInvalidationSink,
    ):
        post = await make_post(status=PostStatus.PUBLISHED, category_id=category.id)

        await manager.delete(post.id)

        assert sink.calls == [["/", "/posts/hello-world", "/categories/engineering"]]
