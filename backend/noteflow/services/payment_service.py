"""
NoteFlow Backend — Payment Service
====================================

What:  The purchase workflow, the buyer's purchase history, creator earnings
       and single-payment lookup.
Who:   Called by routes/payments.py.

Purchase Flow (POST /api/payments/purchase):
    ┌────────────┐    ┌──────────────┐    ┌────────────────────┐    ┌──────────┐
    │ Load note  │───▶│ Guards 1-4   │───▶│ INSERT ... ON      │───▶│ Re-read  │
    │ + purchased│    │ (policy)     │    │ CONFLICT DO NOTHING│    │ access   │
    └────────────┘    └──────────────┘    └────────────────────┘    └──────────┘

    An empty RETURNING from the insert means a concurrent request bought the
    same note first; that is reported as "already purchased", never as a 500.
    Everything runs inside the request transaction, so any later failure
    rolls the payment back with it.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from noteflow.config import settings
from noteflow.database import insert_ignoring_conflicts
from noteflow.exceptions import (
    AuthorizationError,
    ConflictError,
    DatabaseError,
    NotFoundError,
)
from noteflow.models.note import Note
from noteflow.models.payment import STATUS_COMPLETED, Payment
from noteflow.models.user import User
from noteflow.schemas.common import Pagination
from noteflow.schemas.payment import (
    CreatorEarningsData,
    EarningsBucket,
    EarningsSummary,
    EarningTransaction,
    PaymentData,
    PaymentDetail,
    PaymentReceipt,
    PurchaseData,
    PurchasedNote,
    PurchaseHistoryData,
    PurchaseItem,
    PurchaseRequest,
)
from noteflow.services.access_policy import (
    MSG_ALREADY_PURCHASED,
    check_purchasable,
    from_cents,
)
from noteflow.services.note_service import note_service, purchased_flag

logger = logging.getLogger(__name__)

MSG_PAYMENT_NOT_FOUND = "Payment not found"
MSG_PAYMENT_FORBIDDEN = "Access denied. You can only view your own payments"

ANALYTICS_PERIODS = ("day", "week", "month", "year")
ANALYTICS_MAX_BUCKETS = 12


def generate_transaction_id(now: datetime) -> str:
    """TXN-<epoch millis>-<9 random hex chars>, unique per payment."""
    return f"TXN-{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:9].upper()}"


def period_key(moment: datetime, period: str) -> str:
    """
    Bucket label for `moment`. Labels sort chronologically as strings:
        day    2024-03-07
        week   2024-W10   (ISO week)
        month  2024-03
        year   2024
    """
    if period not in ANALYTICS_PERIODS:
        raise ValueError(f"Unknown period '{period}'")
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    if period == "day":
        return moment.strftime("%Y-%m-%d")
    if period == "week":
        iso_year, iso_week, _ = moment.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    if period == "month":
        return moment.strftime("%Y-%m")
    return moment.strftime("%Y")


def bucket_earnings(
    sales: List[Tuple[datetime, int]],
    period: str,
    max_buckets: int = ANALYTICS_MAX_BUCKETS,
) -> List[EarningsBucket]:
    """Groups (created_at, amount_cents) pairs by period, newest bucket first."""
    totals: Dict[str, List[int]] = {}
    for created_at, amount_cents in sales:
        bucket = totals.setdefault(period_key(created_at, period), [0, 0])
        bucket[0] += 1
        bucket[1] += amount_cents

    newest_first = sorted(totals.items(), reverse=True)[:max_buckets]
    return [
        EarningsBucket(period=key, sales_count=count, total_amount=from_cents(cents))
        for key, (count, cents) in newest_first
    ]


class PaymentService:
    async def purchase_note(
        self,
        db: AsyncSession,
        buyer: User,
        payload: PurchaseRequest,
    ) -> PurchaseData:
        try:
            result = await db.execute(
                select(Note, User.name, purchased_flag(buyer.id))
                .join(User, User.id == Note.creator_id)
                .where(Note.id == payload.note_id)
            )
            row = result.first()
        except SQLAlchemyError as e:
            logger.error("Database error loading note for purchase: %s", str(e))
            raise DatabaseError(context={"operation": "purchase_load", "note_id": str(payload.note_id)})

        note, creator_name, already_purchased = row if row else (None, None, False)
        check_purchasable(note, buyer.id, already_purchased=bool(already_purchased))

        now = datetime.now(timezone.utc)
        stmt = insert_ignoring_conflicts(
            db,
            Payment,
            id=uuid.uuid4(),
            user_id=buyer.id,
            note_id=note.id,
            amount_cents=note.price_cents,
            currency=settings.default_currency,
            status=STATUS_COMPLETED,
            payment_method=payload.payment_method,
            transaction_id=generate_transaction_id(now),
            purchase_metadata={
                "note_title": note.title,
                "creator_name": creator_name,
                "purchase_date": now.isoformat(),
            },
            created_at=now,
        ).returning(Payment.id, Payment.transaction_id)

        try:
            inserted = (await db.execute(stmt)).first()
        except SQLAlchemyError as e:
            logger.error("Database error recording payment: %s", str(e), exc_info=True)
            raise DatabaseError(context={"operation": "purchase_insert", "note_id": str(note.id)})

        if inserted is None:
            logger.warning("Concurrent duplicate purchase of %s by %s", note.id, buyer.id)
            raise ConflictError(message=MSG_ALREADY_PURCHASED, context={"note_id": str(note.id)})

        payment_id, transaction_id = inserted
        logger.info(
            "Purchase completed: payment=%s note=%s buyer=%s amount_cents=%d",
            payment_id, note.id, buyer.id, note.price_cents,
        )

        detail = await note_service.get_note_detail(db, note.id, buyer)
        return PurchaseData(
            payment=PaymentReceipt(
                id=payment_id,
                note_id=note.id,
                amount=from_cents(note.price_cents),
                currency=settings.default_currency,
                status=STATUS_COMPLETED,
                transaction_id=transaction_id,
                date=now,
            ),
            note=PurchasedNote(
                id=note.id,
                title=note.title,
                subject=note.subject,
                creator_name=creator_name,
                is_purchased=detail.is_purchased,
                can_view_full=detail.can_view_full,
                content_access=detail.content_access,
            ),
        )

    async def list_purchases(
        self,
        db: AsyncSession,
        buyer: User,
        limit: int = 20,
        offset: int = 0,
    ) -> PurchaseHistoryData:
        conditions = [Payment.user_id == buyer.id, Payment.status == STATUS_COMPLETED]
        try:
            total = (
                await db.execute(select(func.count(Payment.id)).where(*conditions))
            ).scalar_one()
            result = await db.execute(
                select(Payment, Note.title, Note.subject, Note.thumbnail_url, User.name)
                .outerjoin(Note, Note.id == Payment.note_id)
                .outerjoin(User, User.id == Note.creator_id)
                .where(*conditions)
                .order_by(Payment.created_at.desc(), Payment.id.desc())
                .limit(limit)
                .offset(offset)
            )
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error("Database error listing purchases: %s", str(e))
            raise DatabaseError(context={"operation": "list_purchases"})

        purchases = []
        for payment, title, subject, thumbnail_url, creator_name in rows:
            snapshot = payment.purchase_metadata or {}
            purchases.append(
                PurchaseItem(
                    payment_id=payment.id,
                    transaction_id=payment.transaction_id,
                    note_id=payment.note_id,
                    note_title=title or snapshot.get("note_title"),
                    subject=subject,
                    thumbnail_url=thumbnail_url,
                    creator_name=creator_name or snapshot.get("creator_name"),
                    amount=from_cents(payment.amount_cents),
                    currency=payment.currency,
                    status=payment.status,
                    payment_method=payment.payment_method,
                    purchase_date=payment.created_at,
                )
            )
        return PurchaseHistoryData(
            purchases=purchases,
            pagination=Pagination.build(total=total, limit=limit, offset=offset),
        )

    async def creator_earnings(
        self,
        db: AsyncSession,
        creator: User,
        limit: int = 20,
        offset: int = 0,
        period: Optional[str] = None,
    ) -> CreatorEarningsData:
        """
        Sales of the creator's existing notes: totals, a page of transactions
        with buyer details, and optionally per-period analytics (at most 12
        buckets, newest first).
        """
        conditions = [Note.creator_id == creator.id, Payment.status == STATUS_COMPLETED]
        try:
            total_sales, total_cents = (
                await db.execute(
                    select(func.count(Payment.id), func.coalesce(func.sum(Payment.amount_cents), 0))
                    .join(Note, Note.id == Payment.note_id)
                    .where(*conditions)
                )
            ).one()

            result = await db.execute(
                select(Payment, Note.title, User.name, User.email)
                .join(Note, Note.id == Payment.note_id)
                .join(User, User.id == Payment.user_id)
                .where(*conditions)
                .order_by(Payment.created_at.desc(), Payment.id.desc())
                .limit(limit)
                .offset(offset)
            )
            rows = result.all()

            analytics = None
            if period:
                sales = (
                    await db.execute(
                        select(Payment.created_at, Payment.amount_cents)
                        .join(Note, Note.id == Payment.note_id)
                        .where(*conditions)
                    )
                ).all()
                analytics = bucket_earnings([(c, a) for c, a in sales], period)
        except SQLAlchemyError as e:
            logger.error("Database error computing earnings for %s: %s", creator.id, str(e))
            raise DatabaseError(context={"operation": "creator_earnings"})

        return CreatorEarningsData(
            summary=EarningsSummary(
                total_sales=total_sales,
                total_earnings=from_cents(int(total_cents)),
                currency=settings.default_currency,
            ),
            transactions=[
                EarningTransaction(
                    payment_id=payment.id,
                    transaction_id=payment.transaction_id,
                    note_id=payment.note_id,
                    note_title=title,
                    amount=from_cents(payment.amount_cents),
                    currency=payment.currency,
                    buyer_name=buyer_name,
                    buyer_email=buyer_email,
                    purchase_date=payment.created_at,
                )
                for payment, title, buyer_name, buyer_email in rows
            ],
            pagination=Pagination.build(total=total_sales, limit=limit, offset=offset),
            analytics=analytics,
        )

    async def get_payment(self, db: AsyncSession, payment_id: UUID, user: User) -> PaymentData:
        """Visible to the buyer and to the creator of the purchased note."""
        try:
            result = await db.execute(
                select(Payment, Note.creator_id)
                .outerjoin(Note, Note.id == Payment.note_id)
                .where(Payment.id == payment_id)
            )
            row = result.first()
        except SQLAlchemyError as e:
            logger.error("Database error fetching payment %s: %s", payment_id, str(e))
            raise DatabaseError(context={"operation": "get_payment", "payment_id": str(payment_id)})

        if row is None:
            raise NotFoundError(message=MSG_PAYMENT_NOT_FOUND, resource="payment", resource_id=str(payment_id))

        payment, creator_id = row
        if user.id not in (payment.user_id, creator_id):
            raise AuthorizationError(message=MSG_PAYMENT_FORBIDDEN, context={"payment_id": str(payment_id)})

        return PaymentData(
            payment=PaymentDetail(
                id=payment.id,
                user_id=payment.user_id,
                note_id=payment.note_id,
                amount=from_cents(payment.amount_cents),
                currency=payment.currency,
                status=payment.status,
                payment_method=payment.payment_method,
                transaction_id=payment.transaction_id,
                purchase_metadata=payment.purchase_metadata,
                created_at=payment.created_at,
            )
        )


payment_service = PaymentService()
