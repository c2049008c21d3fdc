"""
Upload Deduplication

Stores for uploads keyed by the SHA-256 of their bytes. The hash is
computed by the upload pipeline; a second upload of the same bytes fails
with DuplicateKeyError carrying the id of the document already holding it.

Uploads can also be grouped by a free-text name chosen by their owner:
photos into collections, scripts into projects.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studiobase.models.photo import Photo
from studiobase.models.script import Script
from studiobase.schemas import PhotoCreate, PhotoUpdate, ScriptCreate, ScriptUpdate
from studiobase.services.records import MutableRecordStore, datastore_errors


@dataclass
class UploadGroup:
    """One named group of a user's uploads."""
    name: str
    count: int
    preview_url: Optional[str]
    created_at: datetime


class ContentAddressedStore(MutableRecordStore):
    """Record store with a unique, sparse content hash."""

    content_hash_column: ClassVar[str]
    # Free-text grouping column, e.g. "project"
    group_column: ClassVar[str]

    async def find_by_content_hash(self, db: AsyncSession, content_hash: str):
        """Return the document holding a hash, or None."""
        column = getattr(self.model, self.content_hash_column)
        return await self.find_one(db, column == content_hash.strip().lower())

    async def list_groups(self, db: AsyncSession, owner_id: str) -> list[UploadGroup]:
        """
        Summarize a user's named groups, oldest group first.

        A group's preview and creation time come from its first upload.
        Uploads with an empty group name are left out.
        """
        owner = getattr(self.model, self.owner_field)
        group = getattr(self.model, self.group_column)
        file_url = getattr(self.model, f"{self.content_field}_file_url")
        stmt = (
            select(group, file_url, self.model.created_at)
            .where(owner == owner_id, group != "")
            .order_by(self.model.created_at, self.model.id)
        )
        async with datastore_errors():
            result = await db.execute(stmt)

        groups: dict[str, UploadGroup] = {}
        for name, url, created_at in result.all():
            if name in groups:
                groups[name].count += 1
            else:
                groups[name] = UploadGroup(name, 1, url or None, created_at)
        return list(groups.values())

    async def list_by_group(
        self,
        db: AsyncSession,
        owner_id: str,
        name: str,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list:
        """A user's uploads in one group, newest first."""
        return await self.list_where(db, *self.group_conditions(owner_id, name), limit=limit, offset=offset)

    async def count_by_group(self, db: AsyncSession, owner_id: str, name: str) -> int:
        return await self.count_where(db, *self.group_conditions(owner_id, name))

    def group_conditions(self, owner_id: str, name: str) -> tuple:
        return (
            getattr(self.model, self.owner_field) == owner_id,
            getattr(self.model, self.group_column) == name.strip(),
        )


class ScriptStore(ContentAddressedStore):
    """Script persistence, grouped into projects."""

    model = Script
    create_schema = ScriptCreate
    update_schema = ScriptUpdate
    owner_field = "user"
    content_field = "script"
    content_hash_column = "script_content_hash"
    group_column = "project"
    unique_fields = {"script_content_hash": "script.contentHash"}

    async def list_projects(self, db: AsyncSession, user_id: str) -> list[UploadGroup]:
        return await self.list_groups(db, user_id)

    async def list_by_project(self, db: AsyncSession, user_id: str, project: str, limit=None, offset=0) -> list[Script]:
        return await self.list_by_group(db, user_id, project, limit=limit, offset=offset)


class PhotoStore(ContentAddressedStore):
    """Photo persistence, grouped into collections."""

    model = Photo
    create_schema = PhotoCreate
    update_schema = PhotoUpdate
    owner_field = "user"
    content_field = "image"
    content_hash_column = "image_content_hash"
    group_column = "photo_collection"
    unique_fields = {"image_content_hash": "image.contentHash"}

    async def list_collections(self, db: AsyncSession, user_id: str) -> list[UploadGroup]:
        return await self.list_groups(db, user_id)

    async def list_by_collection(self, db: AsyncSession, user_id: str, collection: str, limit=None, offset=0) -> list[Photo]:
        return await self.list_by_group(db, user_id, collection, limit=limit, offset=offset)


_script_store: Optional[ScriptStore] = None
_photo_store: Optional[PhotoStore] = None


def get_script_store() -> ScriptStore:
    """Get or create the script store singleton."""
    global _script_store
    if _script_store is None:
        _script_store = ScriptStore()
    return _script_store


def get_photo_store() -> PhotoStore:
    """Get or create the photo store singleton."""
    global _photo_store
    if _photo_store is None:
        _photo_store = PhotoStore()
    return _photo_store
