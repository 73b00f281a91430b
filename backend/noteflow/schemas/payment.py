"""
NoteFlow Backend — Payment Schemas
====================================

What:  Purchase request, purchase confirmation, purchase history and creator
       earnings payloads. Amounts are Decimals serialized as strings.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from noteflow.schemas.common import Pagination
from noteflow.services.access_policy import ContentAccess


class PurchaseRequest(BaseModel):
    note_id: uuid.UUID
    payment_method: str = Field(default="internal", min_length=1, max_length=50)

    model_config = {"extra": "forbid"}


# ── Purchase confirmation ─────────────────────────────────────────────────

class PaymentReceipt(BaseModel):
    id: uuid.UUID
    note_id: Optional[uuid.UUID]
    amount: Decimal
    currency: str
    status: str
    transaction_id: str
    date: datetime


class PurchasedNote(BaseModel):
    id: uuid.UUID
    title: str
    subject: str
    creator_name: Optional[str] = None
    is_purchased: bool
    can_view_full: bool
    content_access: ContentAccess


class PurchaseData(BaseModel):
    payment: PaymentReceipt
    note: PurchasedNote


# ── Purchase history ──────────────────────────────────────────────────────

class PurchaseItem(BaseModel):
    """
    One row of the buyer's history. note_* fields come from the live note
    when it still exists and from the purchase snapshot otherwise.
    """

    payment_id: uuid.UUID
    transaction_id: str
    note_id: Optional[uuid.UUID] = None
    note_title: Optional[str] = None
    subject: Optional[str] = None
    thumbnail_url: Optional[str] = None
    creator_name: Optional[str] = None
    amount: Decimal
    currency: str
    status: str
    payment_method: str
    purchase_date: datetime


class PurchaseHistoryData(BaseModel):
    purchases: List[PurchaseItem]
    pagination: Pagination


# ── Creator earnings ──────────────────────────────────────────────────────

class EarningsSummary(BaseModel):
    total_sales: int
    total_earnings: Decimal
    currency: str


class EarningTransaction(BaseModel):
    payment_id: uuid.UUID
    transaction_id: str
    note_id: Optional[uuid.UUID] = None
    note_title: Optional[str] = None
    amount: Decimal
    currency: str
    buyer_name: Optional[str] = None
    buyer_email: Optional[str] = None
    purchase_date: datetime


class EarningsBucket(BaseModel):
    period: str = Field(description="day: YYYY-MM-DD, week: YYYY-Www, month: YYYY-MM, year: YYYY")
    sales_count: int
    total_amount: Decimal


class CreatorEarningsData(BaseModel):
    summary: EarningsSummary
    transactions: List[EarningTransaction]
    pagination: Pagination
    analytics: Optional[List[EarningsBucket]] = None


# ── Payment detail ────────────────────────────────────────────────────────

class PaymentDetail(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    note_id: Optional[uuid.UUID] = None
    amount: Decimal
    currency: str
    status: str
    payment_method: str
    transaction_id: str
    purchase_metadata: Optional[Dict[str, Any]] = None
    created_at: datetime


class PaymentData(BaseModel):
    payment: PaymentDetail
