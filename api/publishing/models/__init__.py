"""Database models for the publishing engine."""

from publishing.models.post import Post, PostStatus, PostTag, PostVersion
from publishing.models.taxonomy import Category, Tag
from publishing.models.user import User

__all__ = [
    "User",
    "Category",
    "Tag",
    "Post",
    "PostStatus",
    "PostVersion",
    "PostTag",
]
