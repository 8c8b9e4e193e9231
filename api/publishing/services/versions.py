"""Version recorder: append-only title/content snapshots per post."""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from publishing.models.post import Post, PostVersion


@dataclass
class LineChanges:
    """Line-level change counts between two snapshots."""

    added: int
    removed: int


@dataclass
class VersionDiff:
    """Result of comparing two versions of the same post."""

    from_version: int
    to_version: int
    title_changed: bool
    content_changes: LineChanges

    @property
    def summary(self) -> str:
        changes = []
        if self.title_changed:
            changes.append("title changed")
        if self.content_changes.added or self.content_changes.removed:
            changes.append(
                f"content: +{self.content_changes.added} / -{self.content_changes.removed} lines"
            )
        return "; ".join(changes) if changes else "no changes"


def compute_line_diff(before: str, after: str) -> LineChanges:
    """
    Count added and removed lines between two texts.

    Lines are matched as a multiset, so moved lines count as unchanged.
    """
    remaining: dict[str, int] = {}
    before_lines = before.split("\n")
    after_lines = after.split("\n")
    for line in before_lines:
        remaining[line] = remaining.get(line, 0) + 1

    matched = 0
    for line in after_lines:
        if remaining.get(line, 0) > 0:
            remaining[line] -= 1
            matched += 1

    return LineChanges(
        added=len(after_lines) - matched,
        removed=len(before_lines) - matched,
    )


def diff_versions(before: PostVersion, after: PostVersion) -> VersionDiff:
    return VersionDiff(
        from_version=before.version,
        to_version=after.version,
        title_changed=before.title != after.title,
        content_changes=compute_line_diff(before.content, after.content),
    )


class VersionRecorder:
    """
    Writes and reads PostVersion rows.

    Must run inside the caller's transaction. ``record`` relies on the post row
    already being locked by the caller and bumps ``posts.current_version`` with
    a single UPDATE ... RETURNING, so two writers can never draw the same number.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record_initial(self, post: Post) -> PostVersion:
        """Snapshot a freshly inserted post as version 1."""
        snapshot = PostVersion(post_id=post.id, version=1, title=post.title, content=post.content)
        self.db.add(snapshot)
        await self.db.flush()
        return snapshot

    async def record(self, post_id: UUID, title: str, content: str) -> PostVersion:
        """Append the next version for ``post_id``."""
        result = await self.db.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(current_version=Post.current_version + 1)
            .returning(Post.current_version)
            .execution_options(synchronize_session=False)
        )
        next_version = result.scalar_one()

        snapshot = PostVersion(post_id=post_id, version=next_version, title=title, content=content)
        self.db.add(snapshot)
        await self.db.flush()
        return snapshot

    async def list_versions(self, post_id: UUID) -> list[PostVersion]:
        """All versions of a post, newest first."""
        result = await self.db.execute(
            select(PostVersion)
            .where(PostVersion.post_id == post_id)
            .order_by(PostVersion.version.desc())
        )
        return list(result.scalars().all())

    async def get_version(self, post_id: UUID, version: int) -> PostVersion | None:
        result = await self.db.execute(
            select(PostVersion)
            .where(PostVersion.post_id == post_id)
            .where(PostVersion.version == version)
        )
        return result.scalar_one_or_none()
