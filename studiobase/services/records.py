"""
Record Stores

Create, read, update and delete for the document tables. Every write is
its own unit of work and is committed before the call returns.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, ClassVar, Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from studiobase.config import get_settings
from studiobase.errors import DatastoreUnavailable, DuplicateKeyError, NotFound, ValidationError
from studiobase.metrics import duplicate_uploads_total
from studiobase.schemas import DocumentSchema

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def datastore_errors():
    """Translate connection-level failures into DatastoreUnavailable."""
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        logger.error("Datastore unavailable: %s", type(e).__name__)
        raise DatastoreUnavailable(str(e.orig or e)) from e


def validate(schema: type[DocumentSchema], data: Any) -> DocumentSchema:
    """
    Validate input against a schema.

    Args:
        schema: Schema class to validate with
        data: Mapping keyed by camelCase or attribute names, or a schema instance

    Returns:
        The validated schema instance
    """
    if isinstance(data, schema):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e) from e


def unique_violation(error: IntegrityError, columns: dict[str, str]) -> Optional[str]:
    """Return the attribute whose unique index rejected the write, if known."""
    message = str(error.orig)
    for attribute in columns:
        if attribute in message:
            return attribute
    return None


class RecordStore:
    """
    Persistence for one document type.

    Subclasses set the model, its create schema, the owner attribute and
    the unique columns (attribute name -> camelCase field path).
    """

    model: ClassVar[type]
    create_schema: ClassVar[type[DocumentSchema]]
    owner_field: ClassVar[str]
    unique_fields: ClassVar[dict[str, str]] = {}
    content_hash_column: ClassVar[Optional[str]] = None

    @property
    def entity(self) -> str:
        return self.model.__name__

    async def create(self, db: AsyncSession, data: Any):
        """Validate, apply defaults and insert a new document."""
        record = validate(self.create_schema, data)
        row = self.model(**record.to_attributes())
        db.add(row)
        await self.commit(db, row)
        logger.info("Created %s %s", self.entity, row.id)
        return row

    async def get(self, db: AsyncSession, record_id: str):
        """Load a document by id, raising NotFound when absent."""
        async with datastore_errors():
            row = await db.get(self.model, record_id, populate_existing=True)
        if row is None:
            raise NotFound(self.entity, record_id)
        return row

    async def find_one(self, db: AsyncSession, *conditions):
        async with datastore_errors():
            result = await db.execute(select(self.model).where(*conditions))
        return result.scalar_one_or_none()

    async def list_by_owner(
        self,
        db: AsyncSession,
        owner_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list:
        """Documents owned by a user, newest first."""
        owner = getattr(self.model, self.owner_field)
        return await self.list_where(db, owner == owner_id, limit=limit, offset=offset)

    async def count_by_owner(self, db: AsyncSession, owner_id: str) -> int:
        owner = getattr(self.model, self.owner_field)
        return await self.count_where(db, owner == owner_id)

    async def list_where(self, db: AsyncSession, *conditions, limit=None, offset=0) -> list:
        """Rows matching the conditions, newest first, one page at a time."""
        limit = max(1, min(limit or settings.default_page_size, settings.max_page_size))
        offset = max(0, offset or 0)
        stmt = (
            select(self.model)
            .where(*conditions)
            .order_by(self.model.created_at.desc(), self.model.id.desc())
            .offset(offset)
            .limit(limit)
        )
        async with datastore_errors():
            result = await db.execute(stmt)
        return list(result.scalars().all())

    async def count_where(self, db: AsyncSession, *conditions) -> int:
        async with datastore_errors():
            result = await db.execute(
                select(func.count(self.model.id)).where(*conditions)
            )
        return result.scalar() or 0

    async def delete(self, db: AsyncSession, record_id: str) -> None:
        """
        Remove a document.

        The blob behind any storage reference is left in object storage.
        """
        row = await self.get(db, record_id)
        async with datastore_errors():
            await db.delete(row)
        await self.commit(db, row)
        logger.info("Deleted %s %s", self.entity, record_id)

    async def commit(self, db: AsyncSession, row=None) -> None:
        """
        Commit the session, reporting unique index collisions as DuplicateKeyError.

        The flush runs inside a savepoint so a collision only discards the
        rejected row; rows already loaded in the session stay usable.
        """
        attempted = {attr: getattr(row, attr) for attr in self.unique_fields} if row is not None else {}
        try:
            async with datastore_errors():
                async with db.begin_nested():
                    await db.flush()
                await db.commit()
        except IntegrityError as e:
            attribute = unique_violation(e, self.unique_fields)
            if attribute is None:
                raise
            raise await self.duplicate_error(db, attribute, attempted.get(attribute)) from e

    async def duplicate_error(self, db: AsyncSession, attribute: str, value: Any) -> DuplicateKeyError:
        """Build a DuplicateKeyError pointing at the document that holds the value."""
        existing_id = None
        if value is not None:
            column = getattr(self.model, attribute)
            async with datastore_errors():
                result = await db.execute(select(self.model.id).where(column == value))
            existing_id = result.scalar_one_or_none()

        if attribute == self.content_hash_column:
            duplicate_uploads_total.labels(entity=self.entity.lower()).inc()
        logger.warning(
            "Duplicate %s for %s (existing=%s)",
            self.unique_fields[attribute], self.entity, existing_id,
        )
        return DuplicateKeyError(self.unique_fields[attribute], value, existing_id)


class MutableRecordStore(RecordStore):
    """Record store whose documents the owner may edit after creation."""

    update_schema: ClassVar[type[DocumentSchema]]
    # Embedded reference holding the content hash, e.g. "script"
    content_field: ClassVar[Optional[str]] = None

    async def update(self, db: AsyncSession, record_id: str, partial: Any):
        """
        Apply a partial update.

        Only the supplied fields are validated. The owner reference never
        changes, and neither does a content hash once it is set.
        """
        if isinstance(partial, BaseModel):
            partial = partial.model_dump(exclude_unset=True)
        if self.owner_field in partial:
            raise ValidationError(self.owner_field, "is immutable")

        changes = validate(self.update_schema, partial).to_attributes(only_set=True)
        row = await self.get(db, record_id)
        self.check_update(row, changes)

        for attribute, value in changes.items():
            setattr(row, attribute, value)
        await self.commit(db, row)
        logger.info("Updated %s %s (%s)", self.entity, record_id, ", ".join(sorted(changes)))
        return row

    def check_update(self, row, changes: dict[str, Any]) -> None:
        """Reject changes that break invariants of the stored document."""
        if self.content_field and changes.get(self.content_field) is not None:
            current = getattr(row, self.content_field).content_hash
            if current and changes[self.content_field].content_hash != current:
                raise ValidationError(
                    f"{self.content_field}.contentHash", "is immutable once assigned"
                )
