"""
NoteFlow Backend — Note Access Policy
=======================================

What:  Decides what a requester may see of a note and whether they may buy it.
Why:   The monetization rules live in one pure module with no I/O, so every
       route (detail, purchase confirmation) applies exactly the same rules
       and the rules can be tested without a database.
How:   `decide_access(note, requester)` returns a frozen AccessDecision;
       `check_purchasable(...)` raises the first failing purchase guard.

Rules:
    can_view_full = is_owner OR is_purchased OR price == 0

    Without full access the requester gets a teaser: the first content URL
    when the note advertises any free topics, nothing otherwise. The
    remaining URLs are reported only as a count.
"""

import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, model_serializer

from noteflow.exceptions import AuthorizationError, ConflictError, NotFoundError

CENT = Decimal("0.01")

MSG_NOTE_NOT_FOUND = "Note not found"
MSG_OWN_NOTE = "You cannot purchase your own note"
MSG_FREE_NOTE = "This note is free and does not require purchase"
MSG_ALREADY_PURCHASED = "You have already purchased this note"


# ── Money ─────────────────────────────────────────────────────────────────

def to_cents(amount: Decimal) -> int:
    """Converts a decimal amount (e.g. Decimal('9.99')) to integer cents."""
    return int((Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())


def from_cents(cents: int) -> Decimal:
    """Converts integer cents back to a two-place Decimal."""
    return (Decimal(cents) / 100).quantize(CENT)


def is_free(price_cents: int) -> bool:
    return price_cents == 0


# ── Value Objects ─────────────────────────────────────────────────────────

class RequesterContext(BaseModel):
    """
    Who is asking. `user_id` is None for anonymous requests; `is_purchased`
    is the looked-up "has a completed payment for this note" flag.
    """

    model_config = {"frozen": True}

    user_id: Optional[uuid.UUID] = None
    is_purchased: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


class ContentAccess(BaseModel):
    model_config = {"frozen": True}

    can_view_full: bool
    available_content: List[str]
    locked_content_count: Optional[int] = None

    @model_serializer(mode="wrap")
    def _omit_count_on_full_access(self, handler):
        data: Dict[str, Any] = handler(self)
        if data.get("locked_content_count") is None:
            data.pop("locked_content_count", None)
        return data


class AccessDecision(BaseModel):
    model_config = {"frozen": True}

    is_owner: bool
    is_purchased: bool
    can_view_full: bool
    content_access: ContentAccess


# ── Decisions ─────────────────────────────────────────────────────────────

def decide_access(note: Any, requester: RequesterContext) -> AccessDecision:
    """
    Computes the requester's view of `note`.

    `note` is anything exposing creator_id, price_cents, content_urls and
    free_topics (the ORM Note in practice).

    is_owner and is_purchased are independent: a creator who somehow holds
    a payment for their own note reports both as true.
    """
    authenticated = requester.is_authenticated
    is_owner = authenticated and requester.user_id == note.creator_id
    is_purchased = authenticated and requester.is_purchased
    can_view_full = is_owner or is_purchased or is_free(note.price_cents)

    content_urls = list(note.content_urls or [])

    if can_view_full:
        content_access = ContentAccess(
            can_view_full=True,
            available_content=content_urls,
        )
    else:
        teaser = content_urls[:1] if note.free_topics else []
        content_access = ContentAccess(
            can_view_full=False,
            available_content=teaser,
            locked_content_count=max(0, len(content_urls) - 1),
        )

    return AccessDecision(
        is_owner=is_owner,
        is_purchased=is_purchased,
        can_view_full=can_view_full,
        content_access=content_access,
    )


def check_purchasable(
    note: Any,
    buyer_id: uuid.UUID,
    already_purchased: bool = False,
) -> None:
    """
    Raises the first failing purchase guard, in this order:

        1. note missing or unpublished   → NotFoundError
        2. buyer is the creator           → AuthorizationError
        3. note is free                   → ConflictError
        4. buyer already holds a payment  → ConflictError

    Guard 4 is also enforced by the unique constraint at write time; the
    flag here only short-circuits the common, non-racing case.
    """
    if note is None or not note.is_published:
        raise NotFoundError(message=MSG_NOTE_NOT_FOUND, resource="note")
    if note.creator_id == buyer_id:
        raise AuthorizationError(message=MSG_OWN_NOTE, context={"note_id": str(note.id)})
    if is_free(note.price_cents):
        raise ConflictError(message=MSG_FREE_NOTE, context={"note_id": str(note.id)})
    if already_purchased:
        raise ConflictError(message=MSG_ALREADY_PURCHASED, context={"note_id": str(note.id)})
