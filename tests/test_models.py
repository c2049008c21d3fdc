"""
Tests for identifiers and model helpers.
"""

import re

from studiobase.models.base import new_object_id
from studiobase.models.donation import AnonymousDonor, Donation, IdentifiedDonor


def test_object_id_format():
    assert re.fullmatch(r"[0-9a-f]{24}", new_object_id())


def test_object_ids_are_unique_and_ordered():
    ids = [new_object_id() for _ in range(500)]
    assert len(set(ids)) == len(ids)
    # Same process, same second or later: timestamp prefix never decreases
    assert [i[:8] for i in ids] == sorted(i[:8] for i in ids)


class TestDonorIdentity:
    def test_identified(self):
        donation = Donation(donor="a" * 24, donor_email="")
        assert donation.donor_identity == IdentifiedDonor("a" * 24)
        assert donation.receipt_ready

    def test_anonymous_with_email(self):
        donation = Donation(donor=None, donor_email="a@b.c")
        assert donation.donor_identity == AnonymousDonor("a@b.c")
        assert donation.receipt_ready

    def test_anonymous_without_email_is_not_receipt_ready(self):
        donation = Donation(donor=None, donor_email="")
        assert donation.donor_identity == AnonymousDonor("")
        assert not donation.receipt_ready
