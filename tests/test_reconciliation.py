"""
Tests for webhook reconciliation of donations.
"""

import pytest

from studiobase.errors import IllegalTransition, NotFound, ValidationError
from studiobase.models.donation import Donation
from studiobase.services.donations import DonationStore
from studiobase.services.reconciliation import (
    ReconciliationOutcome,
    ReconciliationService,
    reachable,
)

store = DonationStore()
service = ReconciliationService(store)

SUCCEEDED = {
    "kind": "payment.succeeded",
    "sessionId": "cs_1",
    "paymentIntentId": "pi_1",
    "chargeId": "ch_1",
}


@pytest.fixture
async def pending(db, checkout_data):
    return await store.initiate_checkout(db, checkout_data)


async def test_anonymous_happy_path(db, pending):
    result = await service.apply_webhook(db, SUCCEEDED)
    assert result.outcome == ReconciliationOutcome.APPLIED
    donation = result.donation
    assert donation.id == pending.id
    assert donation.status == "completed"
    assert donation.stripe_payment_intent_id == "pi_1"
    assert donation.stripe_charge_id == "ch_1"

    again = await service.apply_webhook(db, SUCCEEDED)
    assert again.outcome == ReconciliationOutcome.ALREADY_APPLIED
    assert again.donation.status == "completed"
    assert again.donation.updated_at == donation.updated_at


async def test_refund_after_completion(db, pending):
    await service.apply_webhook(db, SUCCEEDED)
    result = await service.apply_webhook(db, {"kind": "charge.refunded", "paymentIntentId": "pi_1"})
    assert result.outcome == ReconciliationOutcome.APPLIED
    assert result.donation.status == "refunded"

    with pytest.raises(IllegalTransition) as exc:
        await service.apply_webhook(db, {"kind": "payment.succeeded", "paymentIntentId": "pi_1"})
    assert exc.value.current == "refunded"
    assert (await store.get(db, pending.id)).status == "refunded"


async def test_webhook_before_intent_known(db, checkout_data):
    await store.initiate_checkout(db, {**checkout_data, "stripeSessionId": "cs_2"})

    result = await service.apply_webhook(
        db, {"kind": "checkout.completed", "sessionId": "cs_2", "paymentIntentId": "pi_2"}
    )
    assert result.outcome == ReconciliationOutcome.APPLIED
    assert result.donation.stripe_payment_intent_id == "pi_2"

    followup = await service.apply_webhook(db, {"kind": "payment.succeeded", "paymentIntentId": "pi_2"})
    assert followup.outcome == ReconciliationOutcome.ALREADY_APPLIED
    assert followup.donation.id == result.donation.id


async def test_failed_is_terminal(db, pending):
    failed = await service.apply_webhook(
        db, {"kind": "payment.failed", "sessionId": "cs_1", "paymentIntentId": "pi_1"}
    )
    assert failed.donation.status == "failed"
    assert failed.donation.stripe_payment_intent_id == "pi_1"

    for event in (SUCCEEDED, {"kind": "charge.refunded", "paymentIntentId": "pi_1"}):
        with pytest.raises(IllegalTransition):
            await service.apply_webhook(db, event)
    assert (await store.get(db, pending.id)).status == "failed"


async def test_completed_cannot_fail(db, pending):
    await service.apply_webhook(db, SUCCEEDED)
    with pytest.raises(IllegalTransition):
        await service.apply_webhook(db, {"kind": "payment.failed", "paymentIntentId": "pi_1"})


async def test_refund_before_completion_is_ignored(db, pending):
    before = pending.updated_at
    result = await service.apply_webhook(db, {"kind": "charge.refunded", "sessionId": "cs_1"})
    assert result.outcome == ReconciliationOutcome.IGNORED
    assert result.donation.status == "pending"
    assert result.donation.updated_at == before


async def test_unknown_session(db, pending):
    with pytest.raises(NotFound):
        await service.apply_webhook(db, {"kind": "payment.succeeded", "sessionId": "cs_missing"})


async def test_event_needs_an_identifier(db):
    with pytest.raises(ValidationError) as exc:
        await service.apply_webhook(db, {"kind": "payment.succeeded"})
    assert exc.value.field == "sessionId"


async def test_customer_email_fills_anonymous_donor(db, checkout_data):
    await store.initiate_checkout(db, {**checkout_data, "donorEmail": "", "stripeSessionId": "cs_e"})
    result = await service.apply_webhook(
        db, {"kind": "checkout.completed", "sessionId": "cs_e", "customerEmail": "fan@example.com"}
    )
    assert result.donation.donor_email == "fan@example.com"
    assert result.donation.receipt_ready


async def test_payment_intent_match_takes_precedence(db, checkout_data):
    await store.initiate_checkout(db, {**checkout_data, "stripeSessionId": "cs_a"})
    other = await store.initiate_checkout(db, {**checkout_data, "stripeSessionId": "cs_b"})
    await service.apply_webhook(db, {"kind": "payment.succeeded", "sessionId": "cs_a", "paymentIntentId": "pi_x"})

    # pi_x is stored on cs_a, so the event is matched there and not on cs_b
    result = await service.apply_webhook(
        db, {"kind": "payment.succeeded", "sessionId": "cs_b", "paymentIntentId": "pi_x"}
    )
    assert result.outcome == ReconciliationOutcome.ALREADY_APPLIED
    assert result.donation.stripe_session_id == "cs_a"
    assert (await store.get(db, other.id)).status == "pending"


class StaleMatchService(ReconciliationService):
    """Hands out a snapshot taken before another delivery won the race."""

    def __init__(self, store, snapshot):
        super().__init__(store)
        self.snapshot = snapshot

    async def match(self, db, event):
        return self.snapshot


async def test_lost_race_converges(db, pending):
    snapshot = Donation(
        id=pending.id,
        status="pending",
        donor=None,
        donor_email=pending.donor_email,
        stripe_session_id="cs_1",
        stripe_payment_intent_id=None,
    )
    winner = await service.apply_webhook(db, SUCCEEDED)
    assert winner.outcome == ReconciliationOutcome.APPLIED

    loser = await StaleMatchService(store, snapshot).apply_webhook(db, SUCCEEDED)
    assert loser.outcome == ReconciliationOutcome.ALREADY_APPLIED
    assert loser.donation.status == "completed"
    assert loser.donation.updated_at == winner.donation.updated_at


async def test_concurrent_deliveries_apply_once(db, session_maker, pending):
    async with session_maker() as first, session_maker() as second:
        # Both deliveries see the donation while it is still pending
        for session in (first, second):
            assert (await store.get(session, pending.id)).status == "pending"
            await session.commit()

        winner = await service.apply_webhook(first, SUCCEEDED)
        await first.commit()
        loser = await service.apply_webhook(second, SUCCEEDED)

    assert winner.outcome == ReconciliationOutcome.APPLIED
    assert loser.outcome == ReconciliationOutcome.ALREADY_APPLIED
    assert loser.donation.status == "completed"
    assert loser.donation.updated_at == winner.donation.updated_at


def test_reachable():
    lattice = {"pending": ["completed", "failed"], "completed": ["refunded"], "failed": [], "refunded": []}
    assert reachable("pending", "refunded", lattice)
    assert not reachable("completed", "failed", lattice)
    assert not reachable("refunded", "completed", lattice)
