"""
Donation Service

Donation rows are written once when a checkout session is created and
are then owned by the system: donors and recipients can read them, only
payment webhooks move them (see services.reconciliation).
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from studiobase.models.donation import AnonymousDonor, Donation, DonationStatus, IdentifiedDonor
from studiobase.schemas import DonationCreate
from studiobase.services.records import RecordStore

logger = logging.getLogger(__name__)


def collapse_donor(data: dict[str, Any]) -> dict[str, Any]:
    """Split a Donor variant into the donor and donorEmail fields."""
    donor = data.get("donor")
    if isinstance(donor, IdentifiedDonor):
        data = {**data, "donor": donor.user_id}
    elif isinstance(donor, AnonymousDonor):
        data = {k: v for k, v in data.items() if k not in ("donor_email", "donorEmail")}
        data["donor"] = None
        data["donorEmail"] = donor.email
    return data


class DonationStore(RecordStore):
    """Donation persistence. There is no update: rows change only through reconciliation."""

    model = Donation
    create_schema = DonationCreate
    owner_field = "donor"
    unique_fields = {
        "stripe_session_id": "stripeSessionId",
        "stripe_payment_intent_id": "stripePaymentIntentId",
    }

    async def initiate_checkout(self, db: AsyncSession, checkout: Any) -> Donation:
        """
        Record a pending donation for a checkout session.

        The session id comes from the payment processor and doubles as the
        idempotency key: a retried call fails with DuplicateKeyError
        pointing at the row already written.

        Args:
            db: Database session
            checkout: DonationCreate, or a mapping whose ``donor`` may be an
                IdentifiedDonor / AnonymousDonor

        Returns:
            The pending donation
        """
        if isinstance(checkout, BaseModel):
            checkout = checkout.model_dump(exclude_unset=True)
        donation = await self.create(db, collapse_donor(dict(checkout)))
        logger.info(
            "Checkout %s recorded as donation %s (%s %.2f to %s)",
            donation.stripe_session_id,
            donation.id,
            donation.currency,
            donation.amount,
            donation.recipient,
        )
        return donation

    async def find_by_session_id(self, db: AsyncSession, session_id: str) -> Optional[Donation]:
        return await self.find_one(db, Donation.stripe_session_id == session_id)

    async def find_by_payment_intent_id(self, db: AsyncSession, payment_intent_id: str) -> Optional[Donation]:
        return await self.find_one(db, Donation.stripe_payment_intent_id == payment_intent_id)

    async def list_by_recipient(self, db: AsyncSession, recipient_id: str, limit=None, offset=0) -> list[Donation]:
        """Donations received by a user, newest first."""
        return await self.list_where(db, Donation.recipient == recipient_id, limit=limit, offset=offset)

    async def count_by_recipient(self, db: AsyncSession, recipient_id: str) -> int:
        return await self.count_where(db, Donation.recipient == recipient_id)

    async def list_by_status(self, db: AsyncSession, status: str, limit=None) -> list[Donation]:
        """Donations in one status, e.g. pending rows to re-check against Stripe."""
        return await self.list_where(db, Donation.status == status, limit=limit)

    async def list_pending(self, db: AsyncSession, limit=None) -> list[Donation]:
        return await self.list_by_status(db, DonationStatus.PENDING.value, limit=limit)


_donation_store: Optional[DonationStore] = None


def get_donation_store() -> DonationStore:
    """Get or create the donation store singleton."""
    global _donation_store
    if _donation_store is None:
        _donation_store = DonationStore()
    return _donation_store
