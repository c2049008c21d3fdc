"""
Donation Model

A monetary transfer from a donor to a recipient, brokered by Stripe.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union

from sqlalchemy import Column, DateTime, Float, Index, String, Text

from studiobase.database import Base
from studiobase.models.base import JSONDocument, new_object_id


class DonationStatus(str, Enum):
    """Donation status values."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentEventKind(str, Enum):
    """Payment processor events that move a donation."""
    CHECKOUT_COMPLETED = "checkout.completed"
    PAYMENT_SUCCEEDED = "payment.succeeded"
    PAYMENT_FAILED = "payment.failed"
    CHARGE_REFUNDED = "charge.refunded"


# Event kind -> (required current status, resulting status)
EVENT_TRANSITIONS = {
    PaymentEventKind.CHECKOUT_COMPLETED: (DonationStatus.PENDING, DonationStatus.COMPLETED),
    PaymentEventKind.PAYMENT_SUCCEEDED: (DonationStatus.PENDING, DonationStatus.COMPLETED),
    PaymentEventKind.PAYMENT_FAILED: (DonationStatus.PENDING, DonationStatus.FAILED),
    PaymentEventKind.CHARGE_REFUNDED: (DonationStatus.COMPLETED, DonationStatus.REFUNDED),
}


@dataclass(frozen=True)
class IdentifiedDonor:
    """Donor with a platform account."""
    user_id: str


@dataclass(frozen=True)
class AnonymousDonor:
    """Donor known only by the email collected at checkout."""
    email: str = ""


Donor = Union[IdentifiedDonor, AnonymousDonor]


class Donation(Base):
    """
    Donation model.

    The row is written when the checkout session is created and then
    driven through its status by payment webhooks:

        pending -> completed -> refunded
        pending -> failed

    The donor reference is empty for anonymous donations, in which case
    the email captured by Stripe identifies the donor.
    """

    __tablename__ = "donations"

    id = Column(String(24), primary_key=True, default=new_object_id)
    donor = Column(String(24), nullable=True)
    donor_email = Column(String(320), nullable=False, default="")
    recipient = Column(String(24), nullable=False)

    # Amount
    amount = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False, default="USD")

    # Stripe
    stripe_session_id = Column(String(255), nullable=False)
    stripe_payment_intent_id = Column(String(255), nullable=True)  # Filled by webhook
    stripe_charge_id = Column(String(255), nullable=False, default="")

    status = Column(String(20), nullable=False, default=DonationStatus.PENDING.value)
    message = Column(Text, nullable=False, default="")
    meta = Column("metadata", JSONDocument, nullable=False, default=dict)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Donation {self.id} session={self.stripe_session_id} status={self.status}>"

    @property
    def donor_identity(self) -> Donor:
        """The donor as an identified account or an anonymous email."""
        if self.donor:
            return IdentifiedDonor(self.donor)
        return AnonymousDonor(self.donor_email or "")

    @property
    def receipt_ready(self) -> bool:
        """Whether the donation names someone a receipt can be sent to."""
        identity = self.donor_identity
        if isinstance(identity, AnonymousDonor):
            return bool(identity.email)
        return True


Index("ix_donations_donor_created_at", Donation.donor, Donation.created_at.desc())
Index("ix_donations_recipient_created_at", Donation.recipient, Donation.created_at.desc())
Index(
    "ux_donations_stripe_payment_intent_id",
    Donation.stripe_payment_intent_id,
    unique=True,
    postgresql_where=Donation.stripe_payment_intent_id.isnot(None),
    sqlite_where=Donation.stripe_payment_intent_id.isnot(None),
)
Index("ux_donations_stripe_session_id", Donation.stripe_session_id, unique=True)
Index("ix_donations_status", Donation.status)
