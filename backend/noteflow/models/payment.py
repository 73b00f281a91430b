"""
NoteFlow Backend — Payment SQLAlchemy Model
=============================================

What:  ORM model for the `payments` table: one row per completed purchase.
Who:   Written by PaymentService.purchase_note; read by purchase history,
       creator earnings and the note access check.

Table Design Rationale:
    - amount_cents is a snapshot of the note price at purchase time; later
      price edits never rewrite history
    - purchase_metadata snapshots note title and creator name so the
      receipt survives note deletion (note_id becomes NULL)
    - unique_user_note_purchase makes a second purchase of the same note
      impossible even under concurrent requests
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from noteflow.database import Base

STATUS_COMPLETED = "completed"


class Payment(Base):
    """A completed purchase of a paid note by a viewer or another creator."""

    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Buyer",
    )
    note_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("notes.id", ondelete="SET NULL"),
        nullable=True,
    )

    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=STATUS_COMPLETED)
    payment_method: Mapped[str] = mapped_column(String(50), nullable=False, default="internal")
    transaction_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    purchase_metadata: Mapped[dict | None] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=True,
        comment="Snapshot: note_title, creator_name, purchase_date",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("user_id", "note_id", name="unique_user_note_purchase"),
        Index("idx_payments_user_created", "user_id", "created_at"),
        Index("idx_payments_note", "note_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Payment(id={self.id}, user_id={self.user_id}, note_id={self.note_id}, "
            f"amount_cents={self.amount_cents}, status='{self.status}')>"
        )
