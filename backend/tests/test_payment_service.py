"""
NoteFlow Backend — Payment Service Unit Tests
===============================================

What:  Tests for the purchase workflow, purchase history, creator earnings
       and the earnings analytics helpers.

What we test:
    ✅ Purchase guards: unknown, own, free, already purchased
    ✅ A purchase unlocks the note within the same transaction
    ✅ A duplicate insert is a silent no-op at the database level
    ✅ History survives note deletion through the metadata snapshot
    ✅ Earnings totals, analytics buckets and payment visibility
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from noteflow.database import insert_ignoring_conflicts
from noteflow.exceptions import AuthorizationError, ConflictError, NotFoundError
from noteflow.models.payment import Payment
from noteflow.schemas.payment import PurchaseRequest
from noteflow.services.access_policy import (
    MSG_ALREADY_PURCHASED,
    MSG_FREE_NOTE,
    MSG_OWN_NOTE,
)
from noteflow.services.note_service import note_service
from noteflow.services.payment_service import (
    MSG_PAYMENT_FORBIDDEN,
    PaymentService,
    bucket_earnings,
    generate_transaction_id,
    period_key,
)


async def count_payments(db_session, note_id) -> int:
    return (
        await db_session.execute(select(func.count(Payment.id)).where(Payment.note_id == note_id))
    ).scalar_one()


class TestPurchase:
    def setup_method(self):
        self.service = PaymentService()

    @pytest.mark.asyncio
    async def test_purchase_unlocks_note(self, db_session, creator, viewer, make_note):
        note = await make_note(creator, price_cents=999, free_topics=["A"], content_urls=["u1", "u2", "u3"])

        result = await self.service.purchase_note(db_session, viewer, PurchaseRequest(note_id=note.id))

        assert result.payment.amount == Decimal("9.99")
        assert result.payment.currency == "USD"
        assert result.payment.status == "completed"
        assert result.payment.transaction_id.startswith("TXN-")
        assert result.note.is_purchased is True
        assert result.note.can_view_full is True
        assert result.note.content_access.available_content == ["u1", "u2", "u3"]

        detail = await note_service.get_note_detail(db_session, note.id, viewer)
        assert detail.is_purchased is True
        assert detail.can_view_full is True

    @pytest.mark.asyncio
    async def test_purchase_stores_snapshot(self, db_session, creator, viewer, make_note):
        note = await make_note(creator, title="Genetics", price_cents=250)

        await self.service.purchase_note(
            db_session, viewer, PurchaseRequest(note_id=note.id, payment_method="card")
        )

        payment = (await db_session.execute(select(Payment).where(Payment.note_id == note.id))).scalar_one()
        assert payment.amount_cents == 250
        assert payment.payment_method == "card"
        assert payment.purchase_metadata["note_title"] == "Genetics"
        assert payment.purchase_metadata["creator_name"] == creator.name

    @pytest.mark.asyncio
    async def test_unknown_note(self, db_session, viewer):
        with pytest.raises(NotFoundError):
            await self.service.purchase_note(db_session, viewer, PurchaseRequest(note_id=uuid4()))

    @pytest.mark.asyncio
    async def test_own_note(self, db_session, creator, make_note):
        note = await make_note(creator, price_cents=999)

        with pytest.raises(AuthorizationError) as exc_info:
            await self.service.purchase_note(db_session, creator, PurchaseRequest(note_id=note.id))
        assert exc_info.value.message == MSG_OWN_NOTE
        assert await count_payments(db_session, note.id) == 0

    @pytest.mark.asyncio
    async def test_free_note(self, db_session, creator, viewer, make_note):
        note = await make_note(creator, price_cents=0)

        with pytest.raises(ConflictError) as exc_info:
            await self.service.purchase_note(db_session, viewer, PurchaseRequest(note_id=note.id))
        assert exc_info.value.message == MSG_FREE_NOTE
        assert await count_payments(db_session, note.id) == 0

    @pytest.mark.asyncio
    async def test_second_purchase_rejected(self, db_session, creator, viewer, make_note):
        note = await make_note(creator, price_cents=999)
        await self.service.purchase_note(db_session, viewer, PurchaseRequest(note_id=note.id))

        with pytest.raises(ConflictError) as exc_info:
            await self.service.purchase_note(db_session, viewer, PurchaseRequest(note_id=note.id))
        assert exc_info.value.message == MSG_ALREADY_PURCHASED
        assert await count_payments(db_session, note.id) == 1

    @pytest.mark.asyncio
    async def test_conflicting_insert_returns_nothing(self, db_session, creator, viewer, make_note):
        """The losing side of a purchase race gets an empty RETURNING, not an error."""
        note = await make_note(creator, price_cents=999)

        def purchase_stmt():
            return insert_ignoring_conflicts(
                db_session,
                Payment,
                id=uuid4(),
                user_id=viewer.id,
                note_id=note.id,
                amount_cents=999,
                currency="USD",
                status="completed",
                payment_method="internal",
                transaction_id=generate_transaction_id(datetime.now(timezone.utc)),
                created_at=datetime.now(timezone.utc),
            ).returning(Payment.id)

        first = (await db_session.execute(purchase_stmt())).first()
        second = (await db_session.execute(purchase_stmt())).first()

        assert first is not None
        assert second is None
        assert await count_payments(db_session, note.id) == 1


class TestPurchaseHistory:
    def setup_method(self):
        self.service = PaymentService()

    @pytest.mark.asyncio
    async def test_history_lists_purchases(self, db_session, creator, viewer, make_note):
        first = await make_note(creator, title="First", price_cents=100)
        second = await make_note(creator, title="Second", price_cents=200)
        await self.service.purchase_note(db_session, viewer, PurchaseRequest(note_id=first.id))
        await self.service.purchase_note(db_session, viewer, PurchaseRequest(note_id=second.id))

        history = await self.service.list_purchases(db_session, viewer)

        assert history.pagination.total == 2
        assert {p.note_title for p in history.purchases} == {"First", "Second"}
        assert all(p.creator_name == creator.name for p in history.purchases)

    @pytest.mark.asyncio
    async def test_history_survives_note_deletion(self, db_session, creator, viewer, make_note):
        note = await make_note(creator, title="Ephemeral", price_cents=300)
        await self.service.purchase_note(db_session, viewer, PurchaseRequest(note_id=note.id))

        await note_service.delete_note(db_session, note.id, creator)
        db_session.expire_all()
        await db_session.refresh(viewer)
        await db_session.refresh(creator)

        history = await self.service.list_purchases(db_session, viewer)

        assert len(history.purchases) == 1
        item = history.purchases[0]
        assert item.note_id is None
        assert item.note_title == "Ephemeral"
        assert item.creator_name == creator.name
        assert item.amount == Decimal("3.00")


class TestCreatorEarnings:
    def setup_method(self):
        self.service = PaymentService()

    @pytest.mark.asyncio
    async def test_totals_and_transactions(self, db_session, creator, viewer, make_user, make_note):
        other_buyer = await make_user()
        note = await make_note(creator, price_cents=999)
        await self.service.purchase_note(db_session, viewer, PurchaseRequest(note_id=note.id))
        await self.service.purchase_note(db_session, other_buyer, PurchaseRequest(note_id=note.id))

        earnings = await self.service.creator_earnings(db_session, creator, period="month")

        assert earnings.summary.total_sales == 2
        assert earnings.summary.total_earnings == Decimal("19.98")
        assert {t.buyer_email for t in earnings.transactions} == {viewer.email, other_buyer.email}
        assert len(earnings.analytics) == 1
        assert earnings.analytics[0].sales_count == 2
        assert earnings.analytics[0].total_amount == Decimal("19.98")

    @pytest.mark.asyncio
    async def test_no_sales(self, db_session, creator):
        earnings = await self.service.creator_earnings(db_session, creator)

        assert earnings.summary.total_sales == 0
        assert earnings.summary.total_earnings == Decimal("0.00")
        assert earnings.transactions == []
        assert earnings.analytics is None


class TestPaymentLookup:
    def setup_method(self):
        self.service = PaymentService()

    @pytest.mark.asyncio
    async def test_visible_to_buyer_and_creator_only(self, db_session, creator, viewer, make_user, make_note):
        stranger = await make_user()
        note = await make_note(creator, price_cents=999)
        purchase = await self.service.purchase_note(db_session, viewer, PurchaseRequest(note_id=note.id))
        payment_id = purchase.payment.id

        assert (await self.service.get_payment(db_session, payment_id, viewer)).payment.id == payment_id
        assert (await self.service.get_payment(db_session, payment_id, creator)).payment.id == payment_id

        with pytest.raises(AuthorizationError) as exc_info:
            await self.service.get_payment(db_session, payment_id, stranger)
        assert exc_info.value.message == MSG_PAYMENT_FORBIDDEN

    @pytest.mark.asyncio
    async def test_unknown_payment(self, db_session, viewer):
        with pytest.raises(NotFoundError):
            await self.service.get_payment(db_session, uuid4(), viewer)


class TestEarningsBuckets:
    @pytest.mark.parametrize(
        "period, expected",
        [
            ("day", "2024-03-07"),
            ("week", "2024-W10"),
            ("month", "2024-03"),
            ("year", "2024"),
        ],
    )
    def test_period_key(self, period, expected):
        assert period_key(datetime(2024, 3, 7, 15, 30, tzinfo=timezone.utc), period) == expected

    def test_iso_week_crosses_year(self):
        # 2021-01-01 belongs to ISO week 53 of 2020
        assert period_key(datetime(2021, 1, 1), "week") == "2020-W53"

    def test_unknown_period(self):
        with pytest.raises(ValueError):
            period_key(datetime(2024, 1, 1), "fortnight")

    def test_buckets_newest_first_and_capped(self):
        sales = [(datetime(2023, month, 1), 100) for month in range(1, 13)]
        sales += [(datetime(2024, 1, 5), 250), (datetime(2024, 1, 20), 250)]

        buckets = bucket_earnings(sales, "month", max_buckets=12)

        assert len(buckets) == 12
        assert buckets[0].period == "2024-01"
        assert buckets[0].sales_count == 2
        assert buckets[0].total_amount == Decimal("5.00")
        assert buckets[-1].period == "2023-02"

    def test_transaction_ids_are_unique(self):
        now = datetime.now(timezone.utc)
        assert generate_transaction_id(now) != generate_transaction_id(now)
