"""
Studiobase Services

Persistence stores and donation reconciliation.
"""

from .releases import ReleaseStore, get_release_store
from .dedup import PhotoStore, ScriptStore, UploadGroup, get_photo_store, get_script_store
from .donations import DonationStore, get_donation_store
from .reconciliation import (
    ReconciliationOutcome,
    ReconciliationResult,
    ReconciliationService,
    get_reconciliation_service,
)

__all__ = [
    "ReleaseStore",
    "ScriptStore",
    "PhotoStore",
    "UploadGroup",
    "DonationStore",
    "ReconciliationService",
    "ReconciliationOutcome",
    "ReconciliationResult",
    "get_release_store",
    "get_script_store",
    "get_photo_store",
    "get_donation_store",
    "get_reconciliation_service",
]
