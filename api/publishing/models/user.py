"""User model (post authors)."""

import uuid

from sqlalchemy import TIMESTAMP, Column, String, Text, UniqueConstraint, Uuid, func

from publishing.database import Base


class User(Base):
    """Author account. Managed by the auth layer, referenced by posts."""

    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text)
    email = Column(String, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    __table_args__ = (UniqueConstraint("email", name="uq_users_email"),)
