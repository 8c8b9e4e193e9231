"""Post lifecycle Pydantic schemas."""

import re
from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from publishing.models.post import PostStatus

SLUG_RE = re.compile(r"^[a-z0-9-]{1,200}$")
URL_RE = re.compile(r"^https?://\S+$")


def _check_title(v: str) -> str:
    if len(v) > 200:
        raise ValueError("Title must be 200 characters or less")
    if not v.strip():
        raise ValueError("Title cannot be empty")
    return v


def _check_slug(v: str) -> str:
    if not SLUG_RE.match(v):
        raise ValueError(
            "Slug must be 1-200 characters, lowercase letters, numbers, and hyphens only"
        )
    return v


def _check_content(v: str) -> str:
    if not v.strip():
        raise ValueError("Content cannot be empty")
    return v


def _check_cover_image(v: str | None) -> str | None:
    if v is not None and not URL_RE.match(v):
        raise ValueError("Cover image must be an http(s) URL")
    return v


def _check_excerpt(v: str | None) -> str | None:
    if v is not None and len(v) > 500:
        raise ValueError("Excerpt must be 500 characters or less")
    return v


class PostCreate(BaseModel):
    """Input of the lifecycle manager's create operation."""

    title: str
    slug: str
    content: str
    author_id: UUID
    excerpt: str | None = None
    cover_image: str | None = None
    status: PostStatus = PostStatus.DRAFT
    published_at: datetime | None = None
    scheduled_at: datetime | None = None
    category_id: UUID | None = None
    tag_ids: list[UUID] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _check_title(v)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str) -> str:
        return _check_slug(v)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        return _check_content(v)

    @field_validator("excerpt")
    @classmethod
    def validate_excerpt(cls, v: str | None) -> str | None:
        return _check_excerpt(v)

    @field_validator("cover_image")
    @classmethod
    def validate_cover_image(cls, v: str | None) -> str | None:
        return _check_cover_image(v)


class PostUpdate(BaseModel):
    """
    Partial update. Only fields present in the payload are applied.

    ``category_id`` may be explicitly null to detach the category; title,
    slug, content and tag_ids may be omitted but not nulled.
    """

    title: str | None = None
    slug: str | None = None
    content: str | None = None
    excerpt: str | None = None
    cover_image: str | None = None
    category_id: UUID | None = None
    tag_ids: list[UUID] | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str:
        if v is None:
            raise ValueError("Title cannot be null")
        return _check_title(v)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str | None) -> str:
        if v is None:
            raise ValueError("Slug cannot be null")
        return _check_slug(v)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str | None) -> str:
        if v is None:
            raise ValueError("Content cannot be null")
        return _check_content(v)

    @field_validator("tag_ids")
    @classmethod
    def validate_tag_ids(cls, v: list[UUID] | None) -> list[UUID]:
        if v is None:
            raise ValueError("tag_ids cannot be null; send [] to clear tags")
        return v

    @field_validator("excerpt")
    @classmethod
    def validate_excerpt(cls, v: str | None) -> str | None:
        return _check_excerpt(v)

    @field_validator("cover_image")
    @classmethod
    def validate_cover_image(cls, v: str | None) -> str | None:
        return _check_cover_image(v)


class CreatePostRequest(PostCreate):
    """HTTP create payload; the slug is generated from the title when omitted."""

    slug: str | None = None  # type: ignore[assignment]

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _check_slug(v)


class ChangeStatusRequest(BaseModel):
    """Request to move a post to another status."""

    status: PostStatus
    scheduled_at: datetime | None = None


class BatchActionRequest(BaseModel):
    """Batch action over a list of post ids. The size cap is enforced by the engine."""

    action: Literal["delete", "publish", "archive"]
    ids: list[UUID] = Field(min_length=1)


class BatchActionResponse(BaseModel):
    """Number of posts actually affected."""

    action: str
    count: int


class PostResponse(BaseModel):
    """Full post response."""

    id: str
    slug: str
    title: str
    content: str
    excerpt: str | None
    cover_image: str | None
    status: PostStatus
    published_at: str | None
    scheduled_at: str | None
    category_id: str | None
    category_slug: str | None
    tag_ids: list[str]
    author_id: str
    current_version: int
    created_at: str | None
    updated_at: str | None


class ListPostsResponse(BaseModel):
    """Paginated post listing."""

    items: list[PostResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class VersionListItem(BaseModel):
    """Version summary for list endpoint."""

    version: int
    title: str
    created_at: str | None
    byte_size: int


class VersionResponse(BaseModel):
    """Full version snapshot."""

    id: str
    post_id: str
    version: int
    title: str
    content: str
    created_at: str | None


class ListVersionsResponse(BaseModel):
    """Response for listing post versions."""

    items: list[VersionListItem]
    post_id: str
    current_version: int


class VersionDiffResponse(BaseModel):
    """Comparison between two versions of a post."""

    from_version: int
    to_version: int
    summary: str
    title_changed: bool
    lines_added: int
    lines_removed: int
