"""Slug generation helpers."""

import re

from pypinyin import lazy_pinyin
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from publishing.models.post import Post

MAX_SLUG_LENGTH = 200


def generate_slug(title: str) -> str:
    """Build a URL-safe slug from a title; Chinese characters become toneless pinyin."""
    romanized = " ".join(lazy_pinyin(title))
    # Convert to lowercase, replace spaces and special chars with hyphens
    base = re.sub(r"[^a-z0-9]+", "-", romanized.lower())
    base = base.strip("-")
    return base[:MAX_SLUG_LENGTH].rstrip("-")


def _with_suffix(slug: str, suffix: int) -> str:
    tail = f"-{suffix}"
    return slug[: MAX_SLUG_LENGTH - len(tail)].rstrip("-") + tail


async def ensure_unique_slug(db: AsyncSession, slug: str) -> str:
    """Return ``slug`` or the first free ``slug-2``, ``slug-3``, ... variant."""
    candidate = slug
    suffix = 2
    while True:
        result = await db.execute(select(Post.id).where(Post.slug == candidate))
        if result.scalar_one_or_none() is None:
            return candidate
        candidate = _with_suffix(slug, suffix)
        suffix += 1
