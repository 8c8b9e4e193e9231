"""Pydantic schemas for request/response validation."""

from publishing.schemas.posts import (
    BatchActionRequest,
    BatchActionResponse,
    ChangeStatusRequest,
    CreatePostRequest,
    PostCreate,
    PostResponse,
    PostUpdate,
)

__all__ = [
    "PostCreate",
    "PostUpdate",
    "CreatePostRequest",
    "ChangeStatusRequest",
    "BatchActionRequest",
    "BatchActionResponse",
    "PostResponse",
]
