"""
NoteFlow Backend — Like & Bookmark SQLAlchemy Models
======================================================

What:  Two identical per-(user, note) membership tables.
How:   A row exists while the user has the note liked / bookmarked. The
       unique constraint on (user_id, note_id) keeps toggles idempotent
       under concurrent requests.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from noteflow.database import Base


class Like(Base):
    __tablename__ = "likes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("user_id", "note_id", name="unique_user_note_like"),
        Index("idx_likes_note", "note_id"),
    )

    def __repr__(self) -> str:
        return f"<Like(user_id={self.user_id}, note_id={self.note_id})>"


class Bookmark(Base):
    __tablename__ = "bookmarks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("user_id", "note_id", name="unique_user_note_bookmark"),
        Index("idx_bookmarks_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Bookmark(user_id={self.user_id}, note_id={self.note_id})>"
