"""
NoteFlow Backend — Comment SQLAlchemy Model
=============================================

What:  ORM model for the `comments` table: free-text feedback on a note,
       optionally carrying a 1-5 star rating.

Soft delete:
    Deleting a comment only flips is_deleted. Every read path filters on
    is_deleted = false, and edits/deletes match on it too, so a deleted
    comment can be neither seen nor resurrected. Rows are kept indefinitely.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    SmallInteger,
    Text,
    Uuid,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column

from noteflow.database import Base


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Author; the only user allowed to edit or delete the comment",
    )
    note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("notes.id", ondelete="CASCADE"),
        nullable=False,
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    rating: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    edited_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Set on every successful edit; NULL means never edited",
    )

    __table_args__ = (
        CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)",
            name="ck_comments_rating_range",
        ),
        Index("idx_comments_note_created", "note_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Comment(id={self.id}, note_id={self.note_id}, rating={self.rating}, "
            f"is_deleted={self.is_deleted})>"
        )
