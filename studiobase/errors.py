"""
Errors

Exceptions raised by the stores and the reconciliation service.
"""
from __future__ import annotations

from typing import Any

from pydantic import ValidationError as PydanticValidationError


class StudiobaseError(Exception):
    """Base class for all domain errors."""


class ValidationError(StudiobaseError):
    """A record breaks a field constraint."""

    def __init__(self, field: str, message: str, accepted: tuple[str, ...] | None = None):
        self.field = field
        self.message = message
        self.accepted = accepted
        detail = f"{field}: {message}"
        if accepted:
            detail += f" (accepted: {', '.join(accepted)})"
        super().__init__(detail)

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError) -> ValidationError:
        """Build from the first error reported by pydantic."""
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or "__root__"
        ctx = error.get("ctx") or {}
        accepted = None
        if error["type"] == "enum" and "choices" in ctx:
            accepted = tuple(ctx["choices"].split(", "))
        message = "is required" if error["type"] == "missing" else error["msg"]
        return cls(field, message, accepted)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"field": self.field, "message": self.message}
        if self.accepted:
            data["accepted"] = list(self.accepted)
        return data


class DuplicateKeyError(StudiobaseError):
    """A uniqueness index rejected the write."""

    def __init__(self, field: str, value: Any = None, existing_id: str | None = None):
        self.field = field
        self.value = value
        self.existing_id = existing_id
        super().__init__(f"Duplicate value for {field}")


class IllegalTransition(StudiobaseError):
    """A status change is not allowed from the current status."""

    def __init__(self, current: str, target: str, reason: str | None = None):
        self.current = current
        self.target = target
        super().__init__(reason or f"Cannot move from {current!r} to {target!r}")


class NotFound(StudiobaseError):
    """No row matches the lookup."""

    def __init__(self, entity: str, key: Any):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key}")


class DatastoreUnavailable(StudiobaseError):
    """The database could not be reached."""
