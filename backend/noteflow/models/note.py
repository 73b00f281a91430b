"""
NoteFlow Backend — Note SQLAlchemy Model
==========================================

What:  ORM model representing the `notes` table: a creator's study material
       offered for free or for a price.
Who:   Used by NoteService for CRUD and listing, by PaymentService for the
       purchase workflow, and by Alembic for schema management.

Table Design Rationale:
    - price_cents: money is an integer number of cents, so "is this note
      free" is an exact comparison with zero
    - topics / content_urls / free_topics / paid_topics: ordered string lists
      stored as JSON (JSONB on PostgreSQL)
    - content_urls order matters: the first URL is the teaser shown to
      non-owners when the note advertises free topics
    - date_uploaded / date_modified: UTC with timezone

    Index on (is_published, date_uploaded):
        The public listing always filters on is_published and sorts newest
        first by default.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    true,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from noteflow.database import Base

CONTENT_TYPES = ("pdf", "image", "mixed")

# JSON everywhere, JSONB where the database supports it
JSONList = JSON().with_variant(JSONB(), "postgresql")


class Note(Base):
    """
    A published (or draft) study note.

    Lifecycle:
        1. Created by a creator (is_published defaults to true)
        2. Edited only by its creator; every edit bumps date_modified
        3. Deleted only by its creator; likes, bookmarks and comments go with
           it, payments keep their snapshot with note_id set to NULL
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    creator_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owner of the note; the only user allowed to edit or delete it",
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(100), nullable=False)
    topics: Mapped[list] = mapped_column(JSONList, nullable=False, default=list)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    content_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="pdf | image | mixed",
    )
    content_urls: Mapped[list] = mapped_column(
        JSONList,
        nullable=False,
        default=list,
        comment="Ordered content URLs; the first one doubles as the free teaser",
    )
    thumbnail_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    free_topics: Mapped[list | None] = mapped_column(JSONList, nullable=True)
    paid_topics: Mapped[list | None] = mapped_column(JSONList, nullable=True)

    price_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Price in cents; 0 means the note is free",
    )
    is_published: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=true(),
    )

    date_uploaded: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    date_modified: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("price_cents >= 0", name="ck_notes_price_non_negative"),
        CheckConstraint(
            "content_type IN ('pdf', 'image', 'mixed')", name="ck_notes_content_type"
        ),
        Index("idx_notes_published_uploaded", "is_published", "date_uploaded"),
        Index("idx_notes_creator", "creator_id"),
        Index("idx_notes_subject", "subject"),
    )

    @property
    def is_free(self) -> bool:
        return self.price_cents == 0

    def __repr__(self) -> str:
        return (
            f"<Note(id={self.id}, title='{self.title}', "
            f"price_cents={self.price_cents})>"
        )
