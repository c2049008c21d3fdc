"""
Photo Model

Photographs uploaded by photographers.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import composite

from studiobase.database import Base
from studiobase.models.base import CameraSettings, ContentAddressedReference, new_object_id


class PhotoCategory(str, Enum):
    """Photo category values."""
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"
    NATURE = "nature"
    URBAN = "urban"
    FASHION = "fashion"
    WEDDING = "wedding"
    EVENT = "event"
    PRODUCT = "product"
    ARTISTIC = "artistic"
    OTHER = "other"


class PhotoUploadStatus(str, Enum):
    """Photo upload status values."""
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


class Photo(Base):
    """
    Uploaded photo model.

    Each photo carries:
    - The stored image and its SHA-256 (unique across photos)
    - Optional capture details (date, location, dimensions)
    - Camera exposure settings
    """

    __tablename__ = "photos"

    id = Column(String(24), primary_key=True, default=new_object_id)
    user = Column(String(24), nullable=False)

    # Basic metadata
    title = Column(String(255), nullable=False)
    photographer = Column(String(255), nullable=False)
    photo_collection = Column(String(255), nullable=False, default="")
    category = Column(String(50), nullable=False)
    capture_date = Column(DateTime, nullable=True)
    location = Column(String(255), nullable=False, default="")
    description = Column(Text, nullable=False, default="")

    # Image file
    image_file_name = Column(String(255), nullable=False)
    image_file_size = Column(BigInteger, nullable=False)  # In bytes
    image_file_type = Column(String(100), nullable=False)
    image_file_url = Column(Text, nullable=False)
    image_storage_key = Column(Text, nullable=False)
    image_content_hash = Column(String(64), nullable=True)  # SHA-256, lowercase hex
    image = composite(
        ContentAddressedReference,
        image_file_name,
        image_file_size,
        image_file_type,
        image_file_url,
        image_storage_key,
        image_content_hash,
    )

    # Dimensions in pixels
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)

    # Camera
    camera = Column(String(255), nullable=False, default="")
    settings_iso = Column(Integer, nullable=True)
    settings_aperture = Column(String(50), nullable=False, default="")
    settings_shutter_speed = Column(String(50), nullable=False, default="")
    settings_focal_length = Column(String(50), nullable=False, default="")
    settings = composite(
        CameraSettings,
        settings_iso,
        settings_aperture,
        settings_shutter_speed,
        settings_focal_length,
    )

    released = Column(Boolean, nullable=False, default=False)
    upload_status = Column(String(20), nullable=False, default=PhotoUploadStatus.PROCESSING.value)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Photo {self.id} user={self.user} category={self.category}>"


Index("ix_photos_user_created_at", Photo.user, Photo.created_at.desc())
Index(
    "ux_photos_image_content_hash",
    Photo.image_content_hash,
    unique=True,
    postgresql_where=Photo.image_content_hash.isnot(None),
    sqlite_where=Photo.image_content_hash.isnot(None),
)
