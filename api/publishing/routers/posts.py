"""Admin router exposing the post lifecycle operations over HTTP."""

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from publishing.database import get_db
from publishing.models.post import Post, PostStatus, PostVersion
from publishing.schemas.posts import (
    BatchActionRequest,
    BatchActionResponse,
    ChangeStatusRequest,
    CreatePostRequest,
    ListPostsResponse,
    ListVersionsResponse,
    PostCreate,
    PostResponse,
    PostUpdate,
    VersionDiffResponse,
    VersionListItem,
    VersionResponse,
)
from publishing.services.cache import CacheInvalidationSink
from publishing.services.posts import PostLifecycleManager, total_pages
from publishing.services.slugs import ensure_unique_slug, generate_slug

router = APIRouter(prefix="/api/v1/admin/posts", tags=["Posts"])


def get_invalidation_sink(request: Request) -> CacheInvalidationSink:
    """Sink configured at startup (see main.lifespan)."""
    return request.app.state.invalidation_sink


def get_post_manager(
    db: AsyncSession = Depends(get_db),
    sink: CacheInvalidationSink = Depends(get_invalidation_sink),
) -> PostLifecycleManager:
    return PostLifecycleManager(db, sink)


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def post_to_response(post: Post) -> PostResponse:
    return PostResponse(
        id=str(post.id),
        slug=post.slug,
        title=post.title,
        content=post.content,
        excerpt=post.excerpt,
        cover_image=post.cover_image,
        status=post.status,
        published_at=_iso(post.published_at),
        scheduled_at=_iso(post.scheduled_at),
        category_id=str(post.category_id) if post.category_id else None,
        category_slug=post.category.slug if post.category else None,
        tag_ids=[str(tag.id) for tag in post.tags],
        author_id=str(post.author_id),
        current_version=post.current_version,
        created_at=_iso(post.created_at),
        updated_at=_iso(post.updated_at),
    )


def version_to_response(version: PostVersion) -> VersionResponse:
    return VersionResponse(
        id=str(version.id),
        post_id=str(version.post_id),
        version=version.version,
        title=version.title,
        content=version.content,
        created_at=_iso(version.created_at),
    )


# --- List / Create ---


@router.get("", response_model=ListPostsResponse, status_code=status.HTTP_200_OK)
async def list_posts(
    manager: PostLifecycleManager = Depends(get_post_manager),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    post_status: PostStatus | None = Query(default=None, alias="status"),
    category_id: UUID | None = Query(default=None),
    tag_id: UUID | None = Query(default=None),
    author_id: UUID | None = Query(default=None),
    search: str | None = Query(default=None, min_length=1),
    sort_by: Literal["created_at", "updated_at", "published_at"] = Query(default="created_at"),
    sort_order: Literal["asc", "desc"] = Query(default="desc"),
) -> ListPostsResponse:
    """List posts with page-based pagination, filters, and sorting."""
    posts, total = await manager.list_posts(
        page=page,
        limit=limit,
        status=post_status,
        category_id=category_id,
        tag_id=tag_id,
        author_id=author_id,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ListPostsResponse(
        items=[post_to_response(post) for post in posts],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages(total, limit),
    )


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    data: CreatePostRequest,
    db: AsyncSession = Depends(get_db),
    manager: PostLifecycleManager = Depends(get_post_manager),
) -> PostResponse:
    """
    Create a new post.

    If slug is not provided, one will be generated from the title.
    """
    slug = data.slug
    if slug is None:
        slug = await ensure_unique_slug(db, generate_slug(data.title) or "post")

    post = await manager.create(PostCreate(**data.model_dump(exclude={"slug"}), slug=slug))
    return post_to_response(post)


# --- Batch ---


@router.post("/batch", response_model=BatchActionResponse, status_code=status.HTTP_200_OK)
async def batch_action(
    data: BatchActionRequest,
    manager: PostLifecycleManager = Depends(get_post_manager),
) -> BatchActionResponse:
    """Delete, publish, or archive up to 100 posts at once."""
    if data.action == "delete":
        count = await manager.batch_delete(data.ids)
    elif data.action == "publish":
        count = await manager.batch_publish(data.ids)
    else:
        count = await manager.batch_archive(data.ids)
    return BatchActionResponse(action=data.action, count=count)


# --- Single post ---


@router.get("/{post_id}", response_model=PostResponse, status_code=status.HTTP_200_OK)
async def get_post(
    post_id: UUID,
    manager: PostLifecycleManager = Depends(get_post_manager),
) -> PostResponse:
    """Get a single post with its category and tags."""
    return post_to_response(await manager.get_post(post_id))


@router.patch("/{post_id}", response_model=PostResponse, status_code=status.HTTP_200_OK)
async def update_post(
    post_id: UUID,
    data: PostUpdate,
    manager: PostLifecycleManager = Depends(get_post_manager),
) -> PostResponse:
    """Update a post. Only the fields present in the body are changed."""
    return post_to_response(await manager.update(post_id, data))


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: UUID,
    manager: PostLifecycleManager = Depends(get_post_manager),
) -> Response:
    await manager.delete(post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{post_id}/status", response_model=PostResponse, status_code=status.HTTP_200_OK)
async def change_post_status(
    post_id: UUID,
    data: ChangeStatusRequest,
    manager: PostLifecycleManager = Depends(get_post_manager),
) -> PostResponse:
    """Switch post status (validated against the state machine)."""
    post = await manager.change_status(post_id, data.status, data.scheduled_at)
    return post_to_response(post)


# --- Version history ---


@router.get("/{post_id}/versions", response_model=ListVersionsResponse)
async def list_versions(
    post_id: UUID,
    manager: PostLifecycleManager = Depends(get_post_manager),
) -> ListVersionsResponse:
    """List all versions of a post, newest first."""
    versions = await manager.list_versions(post_id)
    items = [
        VersionListItem(
            version=v.version,
            title=v.title,
            created_at=_iso(v.created_at),
            byte_size=len(v.content.encode("utf-8")),
        )
        for v in versions
    ]
    return ListVersionsResponse(
        items=items,
        post_id=str(post_id),
        current_version=versions[0].version if versions else 0,
    )


@router.get("/{post_id}/versions/compare", response_model=VersionDiffResponse)
async def compare_versions(
    post_id: UUID,
    from_version: int = Query(..., alias="from", ge=1),
    to_version: int = Query(..., alias="to", ge=1),
    manager: PostLifecycleManager = Depends(get_post_manager),
) -> VersionDiffResponse:
    diff = await manager.compare_versions(post_id, from_version, to_version)
    return VersionDiffResponse(
        from_version=diff.from_version,
        to_version=diff.to_version,
        summary=diff.summary,
        title_changed=diff.title_changed,
        lines_added=diff.content_changes.added,
        lines_removed=diff.content_changes.removed,
    )


@router.get("/{post_id}/versions/{version}", response_model=VersionResponse)
async def get_version(
    post_id: UUID,
    version: int,
    manager: PostLifecycleManager = Depends(get_post_manager),
) -> VersionResponse:
    return version_to_response(await manager.get_version(post_id, version))


@router.post("/{post_id}/versions/{version}/restore", response_model=PostResponse)
async def restore_version(
    post_id: UUID,
    version: int,
    manager: PostLifecycleManager = Depends(get_post_manager),
) -> PostResponse:
    """Restore an old version. This records a new version rather than rewriting history."""
    return post_to_response(await manager.restore_version(post_id, version))
