"""
Tests for checkout initiation and donation lookups.
"""

import pytest

from studiobase.errors import DuplicateKeyError, NotFound
from studiobase.models.base import new_object_id
from studiobase.models.donation import AnonymousDonor, IdentifiedDonor
from studiobase.schemas import DonationResponse
from studiobase.services.donations import DonationStore

store = DonationStore()


async def test_anonymous_checkout_is_pending(db, checkout_data):
    donation = await store.initiate_checkout(db, checkout_data)
    assert donation.status == "pending"
    assert donation.donor is None
    assert donation.donor_email == "a@b.c"
    assert donation.stripe_session_id == "cs_1"
    assert donation.stripe_payment_intent_id is None
    assert donation.stripe_charge_id == ""
    assert donation.amount == 500
    assert donation.receipt_ready


async def test_same_session_persists_once(db, checkout_data):
    first = await store.initiate_checkout(db, checkout_data)
    with pytest.raises(DuplicateKeyError) as exc:
        await store.initiate_checkout(db, {**checkout_data, "amount": 20})
    assert exc.value.field == "stripeSessionId"
    assert exc.value.existing_id == first.id
    assert await store.count_by_recipient(db, checkout_data["recipient"]) == 1


async def test_donor_variants(db, checkout_data, user_id):
    identified = await store.initiate_checkout(
        db, {**checkout_data, "stripeSessionId": "cs_id", "donor": IdentifiedDonor(user_id)}
    )
    assert identified.donor == user_id
    assert identified.donor_identity == IdentifiedDonor(user_id)

    anonymous = await store.initiate_checkout(
        db,
        {**checkout_data, "stripeSessionId": "cs_anon", "donor": AnonymousDonor("fan@example.com")},
    )
    assert anonymous.donor is None
    assert anonymous.donor_email == "fan@example.com"


async def test_history_by_donor_and_recipient(db, checkout_data, user_id):
    recipient = checkout_data["recipient"]
    for i in range(3):
        await store.initiate_checkout(
            db, {**checkout_data, "donor": user_id, "stripeSessionId": f"cs_h{i}"}
        )
    await store.initiate_checkout(
        db, {**checkout_data, "recipient": new_object_id(), "stripeSessionId": "cs_elsewhere"}
    )

    made = await store.list_by_owner(db, user_id)
    assert [d.stripe_session_id for d in made] == ["cs_h2", "cs_h1", "cs_h0"]
    received = await store.list_by_recipient(db, recipient)
    assert len(received) == 3
    assert await store.count_by_owner(db, user_id) == 3


async def test_pending_sweep(db, checkout_data):
    await store.initiate_checkout(db, checkout_data)
    pending = await store.list_pending(db)
    assert [d.stripe_session_id for d in pending] == ["cs_1"]
    assert await store.list_by_status(db, "completed") == []


async def test_lookup_by_stripe_ids(db, checkout_data):
    donation = await store.initiate_checkout(db, checkout_data)
    assert (await store.find_by_session_id(db, "cs_1")).id == donation.id
    assert await store.find_by_payment_intent_id(db, "pi_unknown") is None
    with pytest.raises(NotFound):
        await store.get(db, new_object_id())


async def test_response_shape(db, checkout_data):
    checkout_data["metadata"] = {"campaign": "spring"}
    donation = await store.initiate_checkout(db, checkout_data)
    body = DonationResponse.model_validate(donation).model_dump(by_alias=True)
    assert body["stripeSessionId"] == "cs_1"
    assert body["stripePaymentIntentId"] is None
    assert body["metadata"] == {"campaign": "spring"}
    assert body["receiptReady"] is True
