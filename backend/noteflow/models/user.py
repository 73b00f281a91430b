"""
NoteFlow Backend — User SQLAlchemy Model
==========================================

What:  ORM model for the `users` table: identities that sign in, create,
       buy and engage with notes.
Who:   Used by UserService / AuthService and by every join that needs a
       creator or buyer name.

Table Design Rationale:
    - email is stored lower-cased and unique, so lookups are case-insensitive
      without a functional index
    - role is fixed at signup (creator | viewer); nothing updates it
    - password_hash holds a bcrypt hash, never the plaintext
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from noteflow.database import Base

ROLE_CREATOR = "creator"
ROLE_VIEWER = "viewer"
ROLES = (ROLE_CREATOR, ROLE_VIEWER)


class User(Base):
    """A registered account. Creators publish notes; viewers consume them."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier",
    )
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Lower-cased email address, unique across accounts",
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ROLE_VIEWER,
        comment="creator | viewer, immutable after signup",
    )
    profile_picture: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("role IN ('creator', 'viewer')", name="ck_users_role"),
    )

    @property
    def is_creator(self) -> bool:
        return self.role == ROLE_CREATOR

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
