"""
Pydantic Schemas

Validation contract for documents and the request/response models for the API.
Field aliases are camelCase, matching the persisted record shape.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Iterable

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from studiobase.config import get_settings
from studiobase.models.base import CameraSettings, ContentAddressedReference, StorageReference
from studiobase.models.donation import DonationStatus, PaymentEventKind
from studiobase.models.photo import PhotoUploadStatus
from studiobase.models.release import ReleaseStatus, ReleaseType
from studiobase.models.script import ScriptUploadStatus


def normalize_hex(value: Any) -> Any:
    """Trim and lowercase hex identifiers before their pattern is checked."""
    if isinstance(value, str):
        return value.strip().lower()
    return value


ObjectId = Annotated[
    str, StringConstraints(pattern=r"^[0-9a-f]{24}$"), BeforeValidator(normalize_hex)
]
ContentHash = Annotated[
    str, StringConstraints(pattern=r"^[0-9a-f]{64}$"), BeforeValidator(normalize_hex)
]
RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
TrimmedText = Annotated[str, StringConstraints(strip_whitespace=True)]
NonNegativeInt = Annotated[int, Field(ge=0)]

# Schema field name -> ORM attribute name, where they differ
ATTRIBUTE_NAMES = {"metadata": "meta"}


def check_choice(value: str, choices: Iterable[str]) -> str:
    """Reject values outside an enumerated set."""
    choices = list(choices)
    if value not in choices:
        raise PydanticCustomError(
            "enum",
            "Input should be one of: {choices}",
            {"choices": ", ".join(choices)},
        )
    return value


def default_if_blank(schema: type[BaseModel], value: Any, info: ValidationInfo) -> Any:
    """Replace a missing or falsy value with the field's default."""
    if not value:
        return schema.model_fields[info.field_name].get_default(call_default_factory=True)
    return value


def naive_utc(value: datetime | None) -> datetime | None:
    """Store timestamps as naive UTC."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class DocumentSchema(BaseModel):
    """Base for all schemas: camelCase aliases, readable from ORM objects."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_attributes(self, only_set: bool = False) -> dict[str, Any]:
        """
        Convert to ORM attribute values.

        Args:
            only_set: Only include fields the caller supplied

        Returns:
            Mapping of model attribute name to value
        """
        names = self.model_fields_set if only_set else type(self).model_fields.keys()
        attributes = {}
        for name in names:
            value = getattr(self, name)
            if isinstance(value, EmbeddedSchema):
                value = value.to_value()
            attributes[ATTRIBUTE_NAMES.get(name, name)] = value
        return attributes


class EmbeddedSchema(DocumentSchema):
    """An embedded value stored as a group of columns."""

    def to_value(self) -> Any:
        raise NotImplementedError


# ============================================================================
# Embedded values
# ============================================================================

class StorageReferenceIn(EmbeddedSchema):
    """Optional stored file; every field falls back to its empty value."""
    file_name: TrimmedText = ""
    file_size: NonNegativeInt = 0
    file_type: str = ""
    file_url: str = ""
    storage_key: str = ""

    @field_validator("file_name", "file_size", "file_type", "file_url", "storage_key", mode="before")
    @classmethod
    def blank_to_default(cls, value, info: ValidationInfo):
        return default_if_blank(cls, value, info)

    def to_value(self) -> StorageReference:
        return StorageReference(
            file_name=self.file_name,
            file_size=self.file_size,
            file_type=self.file_type,
            file_url=self.file_url,
            storage_key=self.storage_key,
        )


class ContentReferenceIn(EmbeddedSchema):
    """Stored file whose SHA-256 is the deduplication key."""
    file_name: RequiredText
    file_size: NonNegativeInt
    file_type: RequiredText
    file_url: RequiredText
    storage_key: RequiredText
    content_hash: ContentHash

    def to_value(self) -> ContentAddressedReference:
        return ContentAddressedReference(
            file_name=self.file_name,
            file_size=self.file_size,
            file_type=self.file_type,
            file_url=self.file_url,
            storage_key=self.storage_key,
            content_hash=self.content_hash,
        )


class ContentReferenceOut(StorageReferenceIn):
    """Stored file as returned to clients."""
    content_hash: str | None = None


class CameraSettingsIn(EmbeddedSchema):
    """Exposure settings; ISO may be explicitly null."""
    iso: int | None = None
    aperture: str = ""
    shutter_speed: str = ""
    focal_length: str = ""

    @field_validator("aperture", "shutter_speed", "focal_length", mode="before")
    @classmethod
    def blank_to_default(cls, value, info: ValidationInfo):
        return default_if_blank(cls, value, info)

    def to_value(self) -> CameraSettings:
        return CameraSettings(
            iso=self.iso,
            aperture=self.aperture,
            shutter_speed=self.shutter_speed,
            focal_length=self.focal_length,
        )


# ============================================================================
# Release Schemas
# ============================================================================

class ReleaseCreate(DocumentSchema):
    """Request to create a release."""
    creator: ObjectId
    name: RequiredText
    type: str = ReleaseType.SINGLE.value
    tracks: list[ObjectId] = Field(default_factory=list)
    release_date: datetime
    artwork: StorageReferenceIn = Field(default_factory=StorageReferenceIn)
    description: TrimmedText = ""
    status: str = ReleaseStatus.DRAFT.value
    distribution_channels: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator(
        "type", "tracks", "artwork", "description", "status",
        "distribution_channels", "metadata",
        mode="before",
    )
    @classmethod
    def blank_to_default(cls, value, info: ValidationInfo):
        return default_if_blank(cls, value, info)

    @field_validator("type")
    @classmethod
    def type_choice(cls, v):
        return check_choice(v, [t.value for t in ReleaseType])

    @field_validator("status")
    @classmethod
    def status_choice(cls, v):
        return check_choice(v, [s.value for s in ReleaseStatus])

    @field_validator("release_date")
    @classmethod
    def release_date_utc(cls, v):
        return naive_utc(v)

    @field_validator("distribution_channels")
    @classmethod
    def channels_as_set(cls, v):
        # Set semantics: first occurrence wins
        return list(dict.fromkeys(v))


class ReleaseUpdate(ReleaseCreate):
    """Partial update of a release."""
    model_config = ConfigDict(extra="forbid")

    creator: ObjectId = None
    name: RequiredText = None
    release_date: datetime = None


class ReleaseResponse(DocumentSchema):
    """Release details response."""
    id: str
    creator: str
    name: str
    type: str
    tracks: list[str]
    release_date: datetime
    artwork: StorageReferenceIn
    description: str
    status: str
    distribution_channels: list[str]
    metadata: dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("meta", "metadata")
    )
    created_at: datetime
    updated_at: datetime


class ReleaseListResponse(DocumentSchema):
    """List of releases response."""
    releases: list[ReleaseResponse]
    total: int


# ============================================================================
# Script Schemas
# ============================================================================

class ScriptCreate(DocumentSchema):
    """Request to register an uploaded script."""
    user: ObjectId
    title: RequiredText
    filmmaker: RequiredText
    project: TrimmedText = ""
    category: TrimmedText = ""
    description: TrimmedText = ""
    script: ContentReferenceIn
    upload_status: str = ScriptUploadStatus.READY.value
    released: bool = False

    @field_validator(
        "project", "category", "description", "upload_status", "released",
        mode="before",
    )
    @classmethod
    def blank_to_default(cls, value, info: ValidationInfo):
        return default_if_blank(cls, value, info)

    @field_validator("upload_status")
    @classmethod
    def upload_status_choice(cls, v):
        return check_choice(v, [s.value for s in ScriptUploadStatus])


class ScriptUpdate(ScriptCreate):
    """Partial update of a script."""
    model_config = ConfigDict(extra="forbid")

    user: ObjectId = None
    title: RequiredText = None
    filmmaker: RequiredText = None
    script: ContentReferenceIn = None


class ScriptResponse(DocumentSchema):
    """Script details response."""
    id: str
    user: str
    title: str
    filmmaker: str
    project: str
    category: str
    description: str
    script: ContentReferenceOut
    upload_status: str
    released: bool
    created_at: datetime
    updated_at: datetime


class ScriptListResponse(DocumentSchema):
    """List of scripts response."""
    scripts: list[ScriptResponse]
    total: int


class UploadGroupResponse(DocumentSchema):
    """Summary of one named group of uploads."""
    name: str
    count: int
    preview_url: str | None
    created_at: datetime


class ProjectListResponse(DocumentSchema):
    """A user's script projects."""
    projects: list[UploadGroupResponse]


# ============================================================================
# Photo Schemas
# ============================================================================

class PhotoCreate(DocumentSchema):
    """Request to register an uploaded photo."""
    user: ObjectId
    title: RequiredText
    photographer: RequiredText
    photo_collection: TrimmedText = ""
    category: RequiredText
    capture_date: datetime | None = None
    location: TrimmedText = ""
    description: TrimmedText = ""
    image: ContentReferenceIn
    width: NonNegativeInt | None = None
    height: NonNegativeInt | None = None
    camera: str = ""
    settings: CameraSettingsIn = Field(default_factory=CameraSettingsIn)
    released: bool = False
    upload_status: str = PhotoUploadStatus.PROCESSING.value

    @field_validator(
        "photo_collection", "location", "description", "camera", "settings",
        "released", "upload_status",
        mode="before",
    )
    @classmethod
    def blank_to_default(cls, value, info: ValidationInfo):
        return default_if_blank(cls, value, info)

    @field_validator("category")
    @classmethod
    def category_choice(cls, v):
        return check_choice(v, get_settings().photo_categories)

    @field_validator("upload_status")
    @classmethod
    def upload_status_choice(cls, v):
        return check_choice(v, [s.value for s in PhotoUploadStatus])

    @field_validator("capture_date")
    @classmethod
    def capture_date_utc(cls, v):
        return naive_utc(v)


class PhotoUpdate(PhotoCreate):
    """Partial update of a photo."""
    model_config = ConfigDict(extra="forbid")

    user: ObjectId = None
    title: RequiredText = None
    photographer: RequiredText = None
    category: RequiredText = None
    image: ContentReferenceIn = None


class PhotoResponse(DocumentSchema):
    """Photo details response."""
    id: str
    user: str
    title: str
    photographer: str
    photo_collection: str
    category: str
    capture_date: datetime | None
    location: str
    description: str
    image: ContentReferenceOut
    width: int | None
    height: int | None
    camera: str
    settings: CameraSettingsIn
    released: bool
    upload_status: str
    created_at: datetime
    updated_at: datetime


class PhotoListResponse(DocumentSchema):
    """List of photos response."""
    photos: list[PhotoResponse]
    total: int


class CollectionListResponse(DocumentSchema):
    """A user's photo collections."""
    collections: list[UploadGroupResponse]


# ============================================================================
# Donation Schemas
# ============================================================================

class DonationCreate(DocumentSchema):
    """Checkout initiation: the pending donation row."""
    recipient: ObjectId
    donor: ObjectId | None = None
    donor_email: TrimmedText = ""
    amount: Annotated[float, Field(ge=0)]
    currency: str = Field(default_factory=lambda: get_settings().default_currency)
    stripe_session_id: RequiredText
    message: TrimmedText = ""
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("donor", "donor_email", "currency", "message", "metadata", mode="before")
    @classmethod
    def blank_to_default(cls, value, info: ValidationInfo):
        return default_if_blank(cls, value, info)

    @field_validator("currency")
    @classmethod
    def currency_code(cls, v):
        code = v.strip().upper()
        if len(code) != 3 or not code.isalpha():
            raise PydanticCustomError(
                "currency", "Input should be a three-letter ISO-4217 code"
            )
        return code


class DonationResponse(DocumentSchema):
    """Donation details response."""
    id: str
    donor: str | None
    donor_email: str
    recipient: str
    amount: float
    currency: str
    stripe_session_id: str
    stripe_payment_intent_id: str | None
    stripe_charge_id: str
    status: str
    message: str
    metadata: dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("meta", "metadata")
    )
    receipt_ready: bool
    created_at: datetime
    updated_at: datetime


class DonationListResponse(DocumentSchema):
    """List of donations response."""
    donations: list[DonationResponse]
    total: int


class CheckoutResponse(DocumentSchema):
    """Response after recording a checkout session."""
    donation_id: str
    session_id: str
    status: str = DonationStatus.PENDING.value


# ============================================================================
# Webhook Schemas
# ============================================================================

# Stripe event names accepted in place of the short kinds
STRIPE_EVENT_KINDS = {
    "checkout.session.completed": "checkout.completed",
    "payment_intent.succeeded": "payment.succeeded",
    "payment_intent.payment_failed": "payment.failed",
}


class WebhookEvent(DocumentSchema):
    """Payment processor event, reduced to the identifiers reconciliation needs."""
    kind: str = Field(validation_alias=AliasChoices("kind", "type"))
    session_id: str | None = None
    payment_intent_id: str | None = None
    charge_id: str | None = None
    customer_email: str | None = None

    @field_validator("kind")
    @classmethod
    def kind_choice(cls, v):
        kind = STRIPE_EVENT_KINDS.get(v.strip(), v.strip())
        return check_choice(kind, [k.value for k in PaymentEventKind])

    @field_validator("session_id", "payment_intent_id", "charge_id", "customer_email")
    @classmethod
    def blank_to_none(cls, v):
        if v is not None:
            v = v.strip()
        return v or None


class WebhookResponse(DocumentSchema):
    """Outcome of applying a webhook."""
    received: bool = True
    outcome: str
    donation_id: str
    status: str


# ============================================================================
# Health/Status Schemas
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    version: str
    services: dict[str, str] = {}
