"""Category and Tag models.

Both are owned by the taxonomy admin screens; the publishing engine only reads
them (category slugs for cache paths) and links posts to them.
"""

import uuid

from sqlalchemy import TIMESTAMP, Column, String, Text, UniqueConstraint, Uuid, func

from publishing.database import Base


class Category(Base):
    """Single category a post can be filed under."""

    __tablename__ = "categories"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), nullable=False)
    description = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    __table_args__ = (UniqueConstraint("slug", name="uq_categories_slug"),)


class Tag(Base):
    """Free-form label attached to posts through post_tags."""

    __tablename__ = "tags"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    __table_args__ = (UniqueConstraint("slug", name="uq_tags_slug"),)
