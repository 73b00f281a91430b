"""
NoteFlow Backend — Note Request/Response Schemas
==================================================

What:  Pydantic models for creating, updating, listing and viewing notes.
Why:   Schemas are separate from the ORM model because the API exposes
       computed fields (price as a decimal, creator name, access flags) and
       must never leak content URLs to a requester without full access.

Price:
    Clients send and receive prices as decimals with at most two places
    (0 to 9999.99). Decimals serialize as strings ("9.99"). The database
    stores integer cents; conversion happens in the service layer.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, HttpUrl, model_validator

from noteflow.schemas.common import Pagination
from noteflow.services.access_policy import AccessDecision, ContentAccess, from_cents

ContentType = Literal["pdf", "image", "mixed"]
MAX_PRICE = Decimal("9999.99")


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class NoteCreate(BaseModel):
    title: str = Field(min_length=3, max_length=255)
    subject: str = Field(min_length=1, max_length=100)
    topics: List[str] = Field(min_length=1, description="At least one topic")
    description: Optional[str] = Field(default=None, max_length=2000)
    content_type: ContentType
    content_urls: List[str] = Field(min_length=1, description="Ordered content URLs")
    thumbnail_url: Optional[HttpUrl] = None
    free_topics: Optional[List[str]] = None
    paid_topics: Optional[List[str]] = None
    price: Decimal = Field(default=Decimal("0"), ge=0, le=MAX_PRICE, decimal_places=2)
    is_published: bool = True

    model_config = {"extra": "forbid"}


# Columns that may be changed but never cleared
_NOT_NULLABLE = {"title", "subject", "topics", "content_type", "content_urls", "price", "is_published"}


class NoteUpdate(BaseModel):
    """Partial update. Only fields present in the body are written."""

    title: Optional[str] = Field(default=None, min_length=3, max_length=255)
    subject: Optional[str] = Field(default=None, min_length=1, max_length=100)
    topics: Optional[List[str]] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, max_length=2000)
    content_type: Optional[ContentType] = None
    content_urls: Optional[List[str]] = Field(default=None, min_length=1)
    thumbnail_url: Optional[HttpUrl] = None
    free_topics: Optional[List[str]] = None
    paid_topics: Optional[List[str]] = None
    price: Optional[Decimal] = Field(default=None, ge=0, le=MAX_PRICE, decimal_places=2)
    is_published: Optional[bool] = None

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def reject_null_required(self) -> "NoteUpdate":
        cleared = sorted(
            name for name in self.model_fields_set & _NOT_NULLABLE if getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"Fields cannot be null: {', '.join(cleared)}")
        return self


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class NoteSummary(BaseModel):
    """
    Listing representation. Never includes content_urls: listings are
    public, and content visibility is decided per note on the detail view.
    """

    id: uuid.UUID
    creator_id: uuid.UUID
    creator_name: Optional[str] = None
    title: str
    subject: str
    topics: List[str]
    description: Optional[str] = None
    content_type: str
    thumbnail_url: Optional[str] = None
    free_topics: Optional[List[str]] = None
    paid_topics: Optional[List[str]] = None
    price: Decimal = Field(description="Price in the marketplace currency; 0 means free")
    is_free: bool
    is_published: bool
    date_uploaded: datetime
    date_modified: datetime

    @classmethod
    def from_note(cls, note, creator_name: Optional[str] = None) -> "NoteSummary":
        return cls(
            id=note.id,
            creator_id=note.creator_id,
            creator_name=creator_name,
            title=note.title,
            subject=note.subject,
            topics=list(note.topics or []),
            description=note.description,
            content_type=note.content_type,
            thumbnail_url=note.thumbnail_url,
            free_topics=note.free_topics,
            paid_topics=note.paid_topics,
            price=from_cents(note.price_cents),
            is_free=note.is_free,
            is_published=note.is_published,
            date_uploaded=note.date_uploaded,
            date_modified=note.date_modified,
        )


class NoteDetail(NoteSummary):
    """Detail view: summary plus the requester-specific access decision."""

    is_authenticated: bool
    is_owner: bool
    is_purchased: bool
    can_view_full: bool
    content_access: ContentAccess

    @classmethod
    def build(
        cls,
        note,
        decision: AccessDecision,
        creator_name: Optional[str],
        is_authenticated: bool,
    ) -> "NoteDetail":
        summary = NoteSummary.from_note(note, creator_name)
        return cls(
            **summary.model_dump(),
            is_authenticated=is_authenticated,
            is_owner=decision.is_owner,
            is_purchased=decision.is_purchased,
            can_view_full=decision.can_view_full,
            content_access=decision.content_access,
        )


class NoteData(BaseModel):
    note: NoteDetail


class NoteListData(BaseModel):
    notes: List[NoteSummary]
    pagination: Pagination
    is_authenticated: bool
