"""Create marketplace schema

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates users, notes, payments, comments, likes and bookmarks.
How:   PostgreSQL UUID keys, TIMESTAMP WITH TIME ZONE and JSONB lists.
       The unique (user_id, note_id) constraints on payments, likes and
       bookmarks are what the conditional inserts in the services rely on.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.TIMESTAMP(timezone=True),
        server_default=None if nullable else sa.text("CURRENT_TIMESTAMP"),
        nullable=nullable,
    )


def _user_fk(ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        "user_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete=ondelete),
        nullable=False,
    )


def _note_fk(ondelete: str = "CASCADE", nullable: bool = False) -> sa.Column:
    return sa.Column(
        "note_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("notes.id", ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        _id_column(),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column(
            "email",
            sa.String(255),
            nullable=False,
            comment="Lower-cased email address, unique across accounts",
        ),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'viewer'")),
        sa.Column("profile_picture", sa.String(500), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("role IN ('creator', 'viewer')", name="ck_users_role"),
    )

    op.create_table(
        "notes",
        _id_column(),
        sa.Column(
            "creator_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("subject", sa.String(100), nullable=False),
        sa.Column("topics", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("content_type", sa.String(20), nullable=False, comment="pdf | image | mixed"),
        sa.Column(
            "content_urls",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
            comment="Full content; only returned when the requester may view it",
        ),
        sa.Column("thumbnail_url", sa.String(500), nullable=True),
        sa.Column("free_topics", postgresql.JSONB(), nullable=True),
        sa.Column("paid_topics", postgresql.JSONB(), nullable=True),
        sa.Column(
            "price_cents",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Price in minor units; 0 means free",
        ),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp("date_uploaded"),
        _timestamp("date_modified"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("price_cents >= 0", name="ck_notes_price_non_negative"),
        sa.CheckConstraint(
            "content_type IN ('pdf', 'image', 'mixed')", name="ck_notes_content_type"
        ),
    )
    # Public listing: WHERE is_published ORDER BY date_uploaded DESC
    op.create_index(
        "idx_notes_published_uploaded",
        "notes",
        ["is_published", sa.text("date_uploaded DESC")],
    )
    op.create_index("idx_notes_creator", "notes", ["creator_id"])
    op.create_index("idx_notes_subject", "notes", ["subject"])

    op.create_table(
        "payments",
        _id_column(),
        _user_fk(),
        # Purchase history outlives the note; metadata keeps the snapshot
        _note_fk(ondelete="SET NULL", nullable=True),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default=sa.text("'USD'")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'completed'")),
        sa.Column(
            "payment_method",
            sa.String(50),
            nullable=False,
            server_default=sa.text("'internal'"),
        ),
        sa.Column("transaction_id", sa.String(100), nullable=False),
        sa.Column("purchase_metadata", postgresql.JSONB(), nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("transaction_id", name="uq_payments_transaction_id"),
        sa.UniqueConstraint("user_id", "note_id", name="unique_user_note_purchase"),
    )
    op.create_index(
        "idx_payments_user_created",
        "payments",
        ["user_id", sa.text("created_at DESC")],
    )
    op.create_index("idx_payments_note", "payments", ["note_id"])

    op.create_table(
        "comments",
        _id_column(),
        _user_fk(),
        _note_fk(),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("rating", sa.SmallInteger(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp("created_at"),
        _timestamp("edited_at", nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)",
            name="ck_comments_rating_range",
        ),
    )
    op.create_index(
        "idx_comments_note_created",
        "comments",
        ["note_id", sa.text("created_at DESC")],
    )

    op.create_table(
        "likes",
        _id_column(),
        _user_fk(),
        _note_fk(),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "note_id", name="unique_user_note_like"),
    )
    op.create_index("idx_likes_note", "likes", ["note_id"])

    op.create_table(
        "bookmarks",
        _id_column(),
        _user_fk(),
        _note_fk(),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "note_id", name="unique_user_note_bookmark"),
    )
    op.create_index(
        "idx_bookmarks_user_created",
        "bookmarks",
        ["user_id", sa.text("created_at DESC")],
    )


def downgrade() -> None:
    """Drops every table in reverse dependency order. All data is lost."""
    op.drop_index("idx_bookmarks_user_created", table_name="bookmarks")
    op.drop_table("bookmarks")
    op.drop_index("idx_likes_note", table_name="likes")
    op.drop_table("likes")
    op.drop_index("idx_comments_note_created", table_name="comments")
    op.drop_table("comments")
    op.drop_index("idx_payments_note", table_name="payments")
    op.drop_index("idx_payments_user_created", table_name="payments")
    op.drop_table("payments")
    op.drop_index("idx_notes_subject", table_name="notes")
    op.drop_index("idx_notes_creator", table_name="notes")
    op.drop_index("idx_notes_published_uploaded", table_name="notes")
    op.drop_table("notes")
    op.drop_table("users")
