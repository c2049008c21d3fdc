"""
Webhook Routes

Payment processor callbacks. Signature verification happens upstream;
the body reaching this route is the already-verified event.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas import WebhookResponse
from ..services.reconciliation import get_reconciliation_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/payments", response_model=WebhookResponse)
async def payment_webhook(
    event: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
) -> WebhookResponse:
    """
    Apply a payment event to its donation.

    Re-deliveries are acknowledged without changing the donation. An
    unknown session/intent answers 404 so the processor retries later.
    """
    result = await get_reconciliation_service().apply_webhook(db, event)
    return WebhookResponse(
        outcome=result.outcome.value,
        donation_id=result.donation.id,
        status=result.donation.status,
    )
