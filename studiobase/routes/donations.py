"""
Donation Routes

Checkout recording and donation history. Donations are read-only here;
payment webhooks are the only writers after creation.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..database import get_db
from ..schemas import CheckoutResponse, DonationListResponse, DonationResponse
from ..services.donations import get_donation_store

logger = logging.getLogger(__name__)
settings = get_settings()
router = APIRouter(prefix="/donations", tags=["donations"])


@router.post("/checkout", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
async def create_checkout(
    data: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
) -> CheckoutResponse:
    """
    Record a pending donation for a Stripe checkout session.

    The session must already exist at Stripe; its id is the idempotency
    key, so replaying the same session returns 409.
    """
    donation = await get_donation_store().initiate_checkout(db, data)
    return CheckoutResponse(
        donation_id=donation.id,
        session_id=donation.stripe_session_id,
        status=donation.status,
    )


@router.get("", response_model=DonationListResponse)
async def list_donations_made(
    donor: str,
    limit: int = Query(20, ge=1, le=settings.max_page_size),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> DonationListResponse:
    """Donations made by a user, newest first."""
    store = get_donation_store()
    donations = await store.list_by_owner(db, donor, limit=limit, offset=offset)
    total = await store.count_by_owner(db, donor)
    return DonationListResponse(
        donations=[DonationResponse.model_validate(d) for d in donations],
        total=total,
    )


@router.get("/received", response_model=DonationListResponse)
async def list_donations_received(
    recipient: str,
    limit: int = Query(20, ge=1, le=settings.max_page_size),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> DonationListResponse:
    """Donations received by a user, newest first."""
    store = get_donation_store()
    donations = await store.list_by_recipient(db, recipient, limit=limit, offset=offset)
    total = await store.count_by_recipient(db, recipient)
    return DonationListResponse(
        donations=[DonationResponse.model_validate(d) for d in donations],
        total=total,
    )


@router.get("/pending", response_model=DonationListResponse)
async def list_pending_donations(
    limit: int = Query(settings.max_page_size, ge=1, le=settings.max_page_size),
    db: AsyncSession = Depends(get_db),
) -> DonationListResponse:
    """Pending donations, for re-checking sessions whose webhook never arrived."""
    donations = await get_donation_store().list_pending(db, limit=limit)
    return DonationListResponse(
        donations=[DonationResponse.model_validate(d) for d in donations],
        total=len(donations),
    )


@router.get("/{donation_id}", response_model=DonationResponse)
async def get_donation(
    donation_id: str,
    db: AsyncSession = Depends(get_db),
) -> DonationResponse:
    """Get donation details by ID."""
    donation = await get_donation_store().get(db, donation_id)
    return DonationResponse.model_validate(donation)
