"""Post lifecycle manager.

Orchestrates every mutation of a post: slug checks, the status state machine,
version snapshots and tag replacement all run inside one transaction, and cache
invalidation is emitted only after that transaction commits.
"""

import logging
import math
from collections.abc import AsyncIterator, Callable, Iterable, Sequence
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import TIMESTAMP, delete, func, literal, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from publishing.errors import (
    ConflictError,
    InternalError,
    LimitExceededError,
    NotFoundError,
    PostValidationError,
    PublishingError,
)
from publishing.models.post import Post, PostStatus, PostTag, PostVersion
from publishing.models.taxonomy import Category
from publishing.schemas.posts import PostCreate, PostUpdate
from publishing.services.cache import (
    HOME_PATH,
    CacheInvalidationSink,
    category_path,
    post_path,
    unique_paths,
)
from publishing.services.state_machine import (
    BATCH_ARCHIVABLE,
    BATCH_PUBLISHABLE,
    validate_transition,
)
from publishing.services.versions import VersionDiff, VersionRecorder, diff_versions

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 100

SORT_COLUMNS = {
    "created_at": Post.created_at,
    "updated_at": Post.updated_at,
    "published_at": Post.published_at,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _is_slug_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return "uq_posts_slug" in message or "posts.slug" in message


class PostLifecycleManager:
    """Create, edit, transition, and delete posts."""

    def __init__(
        self,
        db: AsyncSession,
        sink: CacheInvalidationSink,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.sink = sink
        self.clock = clock
        self.versions = VersionRecorder(db)

    # --- Transaction plumbing ---

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[None]:
        """Commit on success; roll back and map storage errors otherwise."""
        try:
            yield
            await self.db.commit()
        except PublishingError:
            await self.db.rollback()
            raise
        except IntegrityError as exc:
            await self.db.rollback()
            if _is_slug_violation(exc):
                raise ConflictError("Post with this slug already exists") from exc
            logger.exception("Integrity failure during %s", operation)
            raise InternalError() from exc
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception("Storage failure during %s", operation)
            raise InternalError() from exc
        except Exception:
            await self.db.rollback()
            raise

    @asynccontextmanager
    async def _reading(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            logger.exception("Storage failure during %s", operation)
            raise InternalError() from exc

    async def _emit(self, paths: Iterable[str | None]) -> None:
        """Send paths to the sink; a failed delivery never fails the operation."""
        paths = unique_paths(paths)
        if not paths:
            return
        try:
            await self.sink.invalidate(paths)
        except Exception:
            logger.exception("Cache invalidation failed for %s", paths)

    # --- Loading helpers ---

    async def _load_for_update(self, post_id: UUID) -> Post:
        """Load a post and hold its row lock until the transaction ends."""
        result = await self.db.execute(
            select(Post)
            .where(Post.id == post_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        post = result.scalar_one_or_none()
        if post is None:
            raise NotFoundError(f"Post '{post_id}' not found")
        return post

    async def _fetch(self, post_id: UUID) -> Post | None:
        result = await self.db.execute(
            select(Post)
            .options(selectinload(Post.category), selectinload(Post.tags))
            .where(Post.id == post_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _category_slug(self, category_id: UUID | None) -> str | None:
        if category_id is None:
            return None
        result = await self.db.execute(select(Category.slug).where(Category.id == category_id))
        return result.scalar_one_or_none()

    async def _public_paths(self, slug: str, category_id: UUID | None) -> list[str | None]:
        category_slug = await self._category_slug(category_id)
        return [
            HOME_PATH,
            post_path(slug),
            category_path(category_slug) if category_slug else None,
        ]

    async def _replace_tags(self, post_id: UUID, tag_ids: Sequence[UUID]) -> None:
        await self.db.execute(delete(PostTag).where(PostTag.post_id == post_id))
        self.db.add_all(
            PostTag(post_id=post_id, tag_id=tag_id) for tag_id in dict.fromkeys(tag_ids)
        )
        await self.db.flush()

    def _check_schedule(self, scheduled_at: datetime | None, now: datetime) -> datetime:
        if scheduled_at is None:
            raise PostValidationError("scheduled_at is required for SCHEDULED status")
        scheduled_at = as_utc(scheduled_at)
        if scheduled_at <= now:
            raise PostValidationError(
                "scheduled_at must be in the future",
                details={"scheduled_at": scheduled_at.isoformat()},
            )
        return scheduled_at

    # --- Single-post operations ---

    async def create(self, data: PostCreate) -> Post:
        """Insert a post with version 1 and its tag associations."""
        async with self._transaction("create"):
            existing = await self.db.execute(select(Post.id).where(Post.slug == data.slug))
            if existing.scalar_one_or_none() is not None:
                raise ConflictError(
                    f"Slug '{data.slug}' already exists", details={"slug": data.slug}
                )

            now = self.clock()
            published_at = None
            scheduled_at = None
            if data.status == PostStatus.SCHEDULED:
                scheduled_at = self._check_schedule(data.scheduled_at, now)
            elif data.status == PostStatus.PUBLISHED:
                published_at = as_utc(data.published_at) if data.published_at else now

            post = Post(
                title=data.title,
                slug=data.slug,
                content=data.content,
                excerpt=data.excerpt,
                cover_image=data.cover_image,
                status=data.status,
                published_at=published_at,
                scheduled_at=scheduled_at,
                category_id=data.category_id,
                author_id=data.author_id,
                current_version=1,
                created_at=now,
                updated_at=now,
            )
            self.db.add(post)
            await self.db.flush()

            await self.versions.record_initial(post)
            if data.tag_ids:
                await self._replace_tags(post.id, data.tag_ids)

            paths = []
            if post.status == PostStatus.PUBLISHED:
                paths = await self._public_paths(post.slug, post.category_id)
            created = await self._fetch(post.id)

        logger.info("Created post %s (%s) as %s", post.id, post.slug, post.status.value)
        await self._emit(paths)
        return created

    async def update(self, post_id: UUID, data: PostUpdate) -> Post:
        """Apply a partial update, snapshotting a new version on title/content edits."""
        changes = data.model_dump(exclude_unset=True)

        async with self._transaction("update"):
            post = await self._load_for_update(post_id)

            new_slug = changes.get("slug")
            if new_slug is not None and new_slug != post.slug:
                clash = await self.db.execute(
                    select(Post.id).where(Post.slug == new_slug).where(Post.id != post.id)
                )
                if clash.scalar_one_or_none() is not None:
                    raise ConflictError(
                        f"Slug '{new_slug}' already exists", details={"slug": new_slug}
                    )

            old_slug = post.slug
            old_category_id = post.category_id
            was_published = post.status == PostStatus.PUBLISHED

            for field in ("title", "slug", "content", "excerpt", "cover_image", "category_id"):
                if field in changes:
                    setattr(post, field, changes[field])
            post.updated_at = self.clock()
            await self.db.flush()

            if "title" in changes or "content" in changes:
                await self.versions.record(post.id, title=post.title, content=post.content)

            if "tag_ids" in changes:
                await self._replace_tags(post.id, changes["tag_ids"])

            paths: list[str | None] = []
            if was_published:
                old_category_slug = await self._category_slug(old_category_id)
                paths = [
                    HOME_PATH,
                    post_path(old_slug),
                    post_path(post.slug) if post.slug != old_slug else None,
                    category_path(old_category_slug) if old_category_slug else None,
                ]
                if post.category_id != old_category_id:
                    new_category_slug = await self._category_slug(post.category_id)
                    if new_category_slug:
                        paths.append(category_path(new_category_slug))

            updated = await self._fetch(post_id)

        logger.info("Updated post %s (fields: %s)", post_id, ", ".join(sorted(changes)) or "none")
        await self._emit(paths)
        return updated

    async def _delete_children(self, post_ids: Sequence[UUID]) -> None:
        """Delete version and tag rows of ``post_ids`` ahead of the posts themselves."""
        for model in (PostTag, PostVersion):
            await self.db.execute(
                delete(model)
                .where(model.post_id.in_(post_ids))
                .execution_options(synchronize_session=False)
            )

    async def delete(self, post_id: UUID) -> None:
        """Hard-delete a post together with its versions and tag links."""
        async with self._transaction("delete"):
            post = await self._load_for_update(post_id)
            paths = []
            if post.status == PostStatus.PUBLISHED:
                paths = await self._public_paths(post.slug, post.category_id)
            await self._delete_children([post.id])
            await self.db.delete(post)

        logger.info("Deleted post %s (%s)", post_id, post.slug)
        await self._emit(paths)

    async def change_status(
        self,
        post_id: UUID,
        status: PostStatus,
        scheduled_at: datetime | None = None,
    ) -> Post:
        """Move a post along one edge of the state machine."""
        target = PostStatus(status)

        async with self._transaction("change_status"):
            post = await self._load_for_update(post_id)
            previous = PostStatus(post.status)
            validate_transition(previous, target)

            now = self.clock()
            if target == PostStatus.SCHEDULED:
                post.scheduled_at = self._check_schedule(scheduled_at, now)
            elif previous == PostStatus.SCHEDULED:
                post.scheduled_at = None

            if target == PostStatus.PUBLISHED and post.published_at is None:
                post.published_at = now
            if previous == PostStatus.PUBLISHED and target == PostStatus.DRAFT:
                post.published_at = None

            post.status = target
            post.updated_at = now

            paths = []
            if PostStatus.PUBLISHED in (previous, target):
                paths = await self._public_paths(post.slug, post.category_id)
            await self.db.flush()
            changed = await self._fetch(post_id)

        logger.info("Post %s status %s -> %s", post_id, previous.value, target.value)
        await self._emit(paths)
        return changed

    # --- Batch operations ---

    def _check_batch(self, ids: Sequence[UUID]) -> None:
        if len(ids) > MAX_BATCH_SIZE:
            raise LimitExceededError(MAX_BATCH_SIZE, len(ids))

    async def _lock_visible(
        self, ids: Sequence[UUID], statuses: Iterable[PostStatus]
    ) -> list[str | None]:
        """Lock the matching rows and collect public paths of those that are visible."""
        result = await self.db.execute(
            select(Post.slug, Category.slug)
            .outerjoin(Category, Post.category_id == Category.id)
            .where(Post.id.in_(ids))
            .where(Post.status.in_(list(statuses)))
            .with_for_update(of=Post)
        )
        paths: list[str | None] = []
        for slug, category_slug in result.all():
            paths.append(post_path(slug))
            if category_slug:
                paths.append(category_path(category_slug))
        if paths:
            paths.insert(0, HOME_PATH)
        return paths

    async def batch_delete(self, ids: Sequence[UUID]) -> int:
        """Delete up to MAX_BATCH_SIZE posts; returns how many rows were removed."""
        self._check_batch(ids)
        if not ids:
            return 0

        async with self._transaction("batch_delete"):
            paths = await self._lock_visible(ids, [PostStatus.PUBLISHED])
            await self._delete_children(ids)
            result = await self.db.execute(
                delete(Post)
                .where(Post.id.in_(ids))
                .execution_options(synchronize_session=False)
            )
            count = result.rowcount

        logger.info("Batch delete: %d requested, %d deleted", len(ids), count)
        await self._emit(paths)
        return count

    async def batch_publish(self, ids: Sequence[UUID]) -> int:
        """Publish the DRAFT/SCHEDULED posts among ``ids``; others are skipped."""
        self._check_batch(ids)
        if not ids:
            return 0

        now = self.clock()
        async with self._transaction("batch_publish"):
            paths = await self._lock_visible(ids, BATCH_PUBLISHABLE)
            result = await self.db.execute(
                update(Post)
                .where(Post.id.in_(ids))
                .where(Post.status.in_(BATCH_PUBLISHABLE))
                .values(
                    status=PostStatus.PUBLISHED,
                    published_at=func.coalesce(
                        Post.published_at, literal(now, TIMESTAMP(timezone=True))
                    ),
                    scheduled_at=None,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            count = result.rowcount

        logger.info("Batch publish: %d requested, %d published", len(ids), count)
        await self._emit(paths)
        return count

    async def batch_archive(self, ids: Sequence[UUID]) -> int:
        """Archive the DRAFT/PUBLISHED/SCHEDULED posts among ``ids``."""
        self._check_batch(ids)
        if not ids:
            return 0

        now = self.clock()
        async with self._transaction("batch_archive"):
            paths = await self._lock_visible(ids, [PostStatus.PUBLISHED])
            result = await self.db.execute(
                update(Post)
                .where(Post.id.in_(ids))
                .where(Post.status.in_(BATCH_ARCHIVABLE))
                .values(status=PostStatus.ARCHIVED, scheduled_at=None, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            count = result.rowcount

        logger.info("Batch archive: %d requested, %d archived", len(ids), count)
        await self._emit(paths)
        return count

    # --- Reads ---

    async def get_post(self, post_id: UUID) -> Post:
        async with self._reading("get_post"):
            post = await self._fetch(post_id)
        if post is None:
            raise NotFoundError(f"Post '{post_id}' not found")
        return post

    async def list_posts(
        self,
        *,
        page: int = 1,
        limit: int = 20,
        status: PostStatus | None = None,
        category_id: UUID | None = None,
        tag_id: UUID | None = None,
        author_id: UUID | None = None,
        search: str | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> tuple[list[Post], int]:
        """
        Page through posts with optional filters.

        Returns the requested page and the total number of matching posts.
        """
        conditions = []
        if status is not None:
            conditions.append(Post.status == status)
        if category_id is not None:
            conditions.append(Post.category_id == category_id)
        if author_id is not None:
            conditions.append(Post.author_id == author_id)
        if tag_id is not None:
            conditions.append(
                Post.id.in_(select(PostTag.post_id).where(PostTag.tag_id == tag_id))
            )
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(Post.title.ilike(pattern), Post.content.ilike(pattern)))

        sort_column = SORT_COLUMNS.get(sort_by, Post.created_at)
        ordering = sort_column.asc() if sort_order == "asc" else sort_column.desc()

        async with self._reading("list_posts"):
            total = await self.db.scalar(
                select(func.count()).select_from(Post).where(*conditions)
            )
            result = await self.db.execute(
                select(Post)
                .options(selectinload(Post.category), selectinload(Post.tags))
                .where(*conditions)
                .order_by(ordering, Post.id)
                .offset((max(page, 1) - 1) * limit)
                .limit(limit)
                .execution_options(populate_existing=True)
            )
            posts = list(result.scalars().all())

        return posts, total or 0

    # --- Version history ---

    async def _require_post(self, post_id: UUID) -> None:
        exists = await self.db.execute(select(Post.id).where(Post.id == post_id))
        if exists.scalar_one_or_none() is None:
            raise NotFoundError(f"Post '{post_id}' not found")

    async def list_versions(self, post_id: UUID) -> list[PostVersion]:
        async with self._reading("list_versions"):
            await self._require_post(post_id)
            return await self.versions.list_versions(post_id)

    async def get_version(self, post_id: UUID, version: int) -> PostVersion:
        async with self._reading("get_version"):
            await self._require_post(post_id)
            snapshot = await self.versions.get_version(post_id, version)
        if snapshot is None:
            raise NotFoundError(f"Version {version} not found for post '{post_id}'")
        return snapshot

    async def compare_versions(self, post_id: UUID, from_version: int, to_version: int) -> VersionDiff:
        before = await self.get_version(post_id, from_version)
        after = await self.get_version(post_id, to_version)
        return diff_versions(before, after)

    async def restore_version(self, post_id: UUID, version: int) -> Post:
        """Copy an old snapshot back onto the post as a new version."""
        async with self._transaction("restore_version"):
            post = await self._load_for_update(post_id)
            snapshot = await self.versions.get_version(post.id, version)
            if snapshot is None:
                raise NotFoundError(f"Version {version} not found for post '{post_id}'")

            post.title = snapshot.title
            post.content = snapshot.content
            post.updated_at = self.clock()
            await self.db.flush()
            await self.versions.record(post.id, title=snapshot.title, content=snapshot.content)

            paths = []
            if post.status == PostStatus.PUBLISHED:
                paths = await self._public_paths(post.slug, post.category_id)
            restored = await self._fetch(post_id)

        logger.info("Restored post %s to version %d", post_id, version)
        await self._emit(paths)
        return restored


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0
