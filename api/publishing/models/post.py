"""Post, PostVersion and PostTag models for the publishing engine."""

import enum
import uuid

from sqlalchemy import (
    TIMESTAMP,
    Column,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import relationship

from publishing.database import Base


class PostStatus(str, enum.Enum):
    """Lifecycle status of a post."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    SCHEDULED = "SCHEDULED"
    ARCHIVED = "ARCHIVED"


class Post(Base):
    """Blog article owned by the lifecycle manager."""

    __tablename__ = "posts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    slug = Column(String(200), nullable=False)
    title = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    excerpt = Column(Text)
    cover_image = Column(Text)
    status = Column(
        Enum(PostStatus, name="post_status"),
        nullable=False,
        default=PostStatus.DRAFT,
    )
    published_at = Column(TIMESTAMP(timezone=True))
    scheduled_at = Column(TIMESTAMP(timezone=True))
    category_id = Column(Uuid(as_uuid=True), ForeignKey("categories.id", ondelete="SET NULL"))
    author_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)

    # Per-post version counter, bumped atomically by the version recorder
    current_version = Column(Integer, nullable=False, default=1, server_default=text("1"))

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("slug", name="uq_posts_slug"),
        Index("idx_posts_status", "status"),
        Index("idx_posts_category", "category_id"),
        Index("idx_posts_author", "author_id"),
        Index("idx_posts_created", created_at.desc()),
    )

    author = relationship("User", foreign_keys=[author_id])
    category = relationship("Category", foreign_keys=[category_id])
    tags = relationship("Tag", secondary="post_tags", viewonly=True, order_by="Tag.name")
    versions = relationship(
        "PostVersion",
        back_populates="post",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PostVersion.version.desc()",
    )


class PostVersion(Base):
    """Immutable snapshot of a post's title and content."""

    __tablename__ = "post_versions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    post_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
    )
    version = Column(Integer, nullable=False)
    title = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("post_id", "version", name="uq_post_version_number"),
    )

    post = relationship("Post", back_populates="versions")


class PostTag(Base):
    """Junction row between a post and an externally owned tag."""

    __tablename__ = "post_tags"

    post_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("posts.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tag_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    )

    __table_args__ = (Index("idx_post_tags_tag", "tag_id"),)
