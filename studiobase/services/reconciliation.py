"""
Donation Reconciliation

Applies payment processor webhooks to donation rows. Delivery is
at-least-once and possibly concurrent, so every application is an
idempotent conditional update:

    UPDATE donations SET status = :target ... WHERE id = :id AND status = :pre

Outcomes:
- applied: the row moved from the required status to the target
- already_applied: the row is already in the target status; nothing written
- ignored: the row is not in the required status but could still get there
  (e.g. a refund arriving before the completion), logged and dropped

Any event that would move a row backwards, or out of failed/refunded,
raises IllegalTransition.
"""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from studiobase.config import get_settings
from studiobase.errors import IllegalTransition, NotFound, ValidationError
from studiobase.metrics import webhook_events_total
from studiobase.models.donation import (
    EVENT_TRANSITIONS,
    Donation,
    DonationStatus,
    PaymentEventKind,
)
from studiobase.schemas import WebhookEvent
from studiobase.services.donations import DonationStore, get_donation_store
from studiobase.services.records import datastore_errors, unique_violation, validate

logger = logging.getLogger(__name__)
settings = get_settings()


class ReconciliationOutcome(str, Enum):
    """Result of applying one webhook."""
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    IGNORED = "ignored"


@dataclass
class ReconciliationResult:
    donation: Donation
    outcome: ReconciliationOutcome


def reachable(current: str, target: str, lattice: dict[str, list[str]]) -> bool:
    """Whether target can still be reached from current in the status lattice."""
    seen = {current}
    queue = deque([current])
    while queue:
        status = queue.popleft()
        for nxt in lattice.get(status, []):
            if nxt == target:
                return True
            if nxt not in seen:
                seen.add(nxt)
                queue.append(nxt)
    return False


class ReconciliationService:
    """Matches webhook events to donations and applies their transitions."""

    def __init__(self, store: Optional[DonationStore] = None):
        self.store = store or get_donation_store()

    async def apply_webhook(self, db: AsyncSession, event: Any) -> ReconciliationResult:
        """
        Apply a payment webhook to its donation.

        Args:
            db: Database session
            event: WebhookEvent or its JSON mapping

        Returns:
            The donation as stored after the event, and what happened

        Raises:
            NotFound: No donation matches the event's identifiers
            IllegalTransition: The event would move the donation backwards
            DuplicateKeyError: The event's payment intent belongs to another donation
        """
        event = validate(WebhookEvent, event)
        if not event.session_id and not event.payment_intent_id:
            raise ValidationError("sessionId", "a session id or payment intent id is required")

        kind = PaymentEventKind(event.kind)
        pre, target = EVENT_TRANSITIONS[kind]

        try:
            donation = await self.match(db, event)
            while True:
                outcome = self.decide(donation, pre, target)
                if outcome is not None:
                    break
                updated = await self.transition(db, donation, event, pre, target)
                donation = await self.store.get(db, donation.id)
                if updated:
                    outcome = ReconciliationOutcome.APPLIED
                    break
                # Lost a race with a concurrent delivery; decide again on the fresh row
                logger.info("Donation %s changed concurrently, re-evaluating", donation.id)
        except NotFound:
            webhook_events_total.labels(kind=kind.value, outcome="not_found").inc()
            logger.warning(
                "No donation for %s (session=%s intent=%s)",
                kind.value, event.session_id, event.payment_intent_id,
            )
            raise
        except IllegalTransition as e:
            webhook_events_total.labels(kind=kind.value, outcome="illegal").inc()
            logger.error("Rejected %s: %s", kind.value, e)
            raise

        webhook_events_total.labels(kind=kind.value, outcome=outcome.value).inc()
        if outcome == ReconciliationOutcome.IGNORED:
            logger.warning(
                "Ignored %s for donation %s: status is %s, expected %s",
                kind.value, donation.id, donation.status, pre.value,
            )
        else:
            logger.info("Donation %s %s by %s (status=%s)", donation.id, outcome.value, kind.value, donation.status)
        return ReconciliationResult(donation=donation, outcome=outcome)

    async def match(self, db: AsyncSession, event: WebhookEvent) -> Donation:
        """Find the donation by payment intent first, then by checkout session."""
        if event.payment_intent_id:
            donation = await self.store.find_by_payment_intent_id(db, event.payment_intent_id)
            if donation is not None:
                return donation
        if event.session_id:
            donation = await self.store.find_by_session_id(db, event.session_id)
            if donation is not None:
                return donation
        raise NotFound("Donation", event.payment_intent_id or event.session_id)

    def decide(
        self,
        donation: Donation,
        pre: DonationStatus,
        target: DonationStatus,
    ) -> Optional[ReconciliationOutcome]:
        """Return the outcome when no write is needed, None when the transition applies."""
        current = donation.status
        if current == target.value:
            return ReconciliationOutcome.ALREADY_APPLIED
        if current == pre.value:
            return None
        if reachable(current, target.value, settings.donation_status_lattice):
            return ReconciliationOutcome.IGNORED
        raise IllegalTransition(current, target.value)

    async def transition(
        self,
        db: AsyncSession,
        donation: Donation,
        event: WebhookEvent,
        pre: DonationStatus,
        target: DonationStatus,
    ) -> bool:
        """Conditionally move the row from pre to target. Returns whether a row changed."""
        values: dict[str, Any] = {
            "status": target.value,
            "updated_at": datetime.utcnow(),
        }
        if target in (DonationStatus.COMPLETED, DonationStatus.FAILED):
            if event.payment_intent_id and not donation.stripe_payment_intent_id:
                values["stripe_payment_intent_id"] = event.payment_intent_id
        if target == DonationStatus.COMPLETED and event.charge_id:
            values["stripe_charge_id"] = event.charge_id
        if event.customer_email and not donation.donor and not donation.donor_email:
            values["donor_email"] = event.customer_email

        stmt = (
            update(Donation)
            .where(Donation.id == donation.id, Donation.status == pre.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            async with datastore_errors():
                async with db.begin_nested():
                    result = await db.execute(stmt)
                await db.commit()
        except IntegrityError as e:
            attribute = unique_violation(e, self.store.unique_fields)
            if attribute is None:
                raise
            raise await self.store.duplicate_error(db, attribute, values.get(attribute)) from e
        return result.rowcount == 1


_reconciliation_service: Optional[ReconciliationService] = None


def get_reconciliation_service() -> ReconciliationService:
    """Get or create the reconciliation service singleton."""
    global _reconciliation_service
    if _reconciliation_service is None:
        _reconciliation_service = ReconciliationService()
    return _reconciliation_service
