"""
Release Service

Release persistence and the owner-driven status flow.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from studiobase.config import get_settings
from studiobase.errors import IllegalTransition, ValidationError
from studiobase.models.release import Release, ReleaseStatus
from studiobase.schemas import ReleaseCreate, ReleaseUpdate
from studiobase.services.records import MutableRecordStore

logger = logging.getLogger(__name__)
settings = get_settings()

# Statuses in which the track list may still change
EDITABLE_STATUSES = (ReleaseStatus.DRAFT.value, ReleaseStatus.SCHEDULED.value)


class ReleaseStore(MutableRecordStore):
    """
    Release persistence.

    Status changes follow ``settings.release_status_flow``. Scheduling
    requires a release date in the future, and the track list is frozen
    once a release leaves draft/scheduled.
    """

    model = Release
    create_schema = ReleaseCreate
    update_schema = ReleaseUpdate
    owner_field = "creator"

    async def list_by_status(self, db, status: str, limit=None, offset=0) -> list[Release]:
        return await self.list_where(db, Release.status == status, limit=limit, offset=offset)

    def check_update(self, row: Release, changes: dict[str, Any]) -> None:
        super().check_update(row, changes)

        if "tracks" in changes and changes["tracks"] != row.tracks:
            if row.status not in EDITABLE_STATUSES:
                raise IllegalTransition(
                    row.status,
                    row.status,
                    f"Tracks cannot change while the release is {row.status}",
                )

        target = changes.get("status")
        if target is None or target == row.status:
            return

        allowed = settings.release_status_flow.get(row.status, [])
        if target not in allowed:
            raise IllegalTransition(row.status, target)

        if target == ReleaseStatus.SCHEDULED.value:
            release_date = changes.get("release_date") or row.release_date
            if release_date <= datetime.utcnow():
                raise ValidationError("releaseDate", "must be in the future to schedule a release")

        logger.info("Release %s moving %s -> %s", row.id, row.status, target)


_release_store: ReleaseStore | None = None


def get_release_store() -> ReleaseStore:
    """Get or create the release store singleton."""
    global _release_store
    if _release_store is None:
        _release_store = ReleaseStore()
    return _release_store
