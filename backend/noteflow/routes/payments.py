"""
NoteFlow Backend — Payment Route Handlers
===========================================

What:  Purchases, purchase history and creator earnings under /api/payments.

    POST /api/payments/purchase           buy a paid note              (auth, 201)
    GET  /api/payments/my-purchases       the caller's purchases       (auth)
    GET  /api/payments/creator-earnings   sales of the caller's notes  (creator)
    GET  /api/payments/{id}               one payment, buyer/creator   (auth)
"""

import logging
from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from noteflow.database import get_db_session
from noteflow.models.user import ROLE_CREATOR, User
from noteflow.schemas.common import ApiResponse
from noteflow.schemas.payment import (
    CreatorEarningsData,
    PaymentData,
    PurchaseData,
    PurchaseHistoryData,
    PurchaseRequest,
)
from noteflow.security import get_current_user, require_role
from noteflow.services.payment_service import payment_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["Payments"])


@router.post(
    "/purchase",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[PurchaseData],
    summary="Purchase a paid note",
    description=(
        "Fails with 404 for unknown notes, 403 for the creator's own note, and "
        "400 for free notes or notes the caller already owns."
    ),
)
async def purchase_note(
    payload: PurchaseRequest,
    buyer: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[PurchaseData]:
    result = await payment_service.purchase_note(db, buyer, payload)
    return ApiResponse[PurchaseData](message="Note purchased successfully", data=result)


@router.get("/my-purchases", response_model=ApiResponse[PurchaseHistoryData])
async def my_purchases(
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    buyer: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[PurchaseHistoryData]:
    result = await payment_service.list_purchases(db, buyer, limit=limit, offset=offset)
    return ApiResponse[PurchaseHistoryData](message="Purchases retrieved successfully", data=result)


@router.get("/creator-earnings", response_model=ApiResponse[CreatorEarningsData])
async def creator_earnings(
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    period: Optional[Literal["day", "week", "month", "year"]] = Query(
        default=None,
        description="Adds per-period analytics (up to 12 buckets, newest first)",
    ),
    creator: User = Depends(require_role(ROLE_CREATOR)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[CreatorEarningsData]:
    result = await payment_service.creator_earnings(
        db, creator, limit=limit, offset=offset, period=period
    )
    return ApiResponse[CreatorEarningsData](message="Earnings retrieved successfully", data=result)


@router.get("/{payment_id}", response_model=ApiResponse[PaymentData])
async def get_payment(
    payment_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[PaymentData]:
    result = await payment_service.get_payment(db, payment_id, user)
    return ApiResponse[PaymentData](message="Payment retrieved successfully", data=result)
