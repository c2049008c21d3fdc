"""
Release Model

A musical release (single, EP, album or compilation) put together by a creator.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import BigInteger, Column, DateTime, Index, String, Text
from sqlalchemy.orm import composite

from studiobase.database import Base
from studiobase.models.base import JSONDocument, StorageReference, new_object_id


class ReleaseType(str, Enum):
    """Release type values."""
    SINGLE = "single"
    EP = "ep"
    ALBUM = "album"
    COMPILATION = "compilation"


class ReleaseStatus(str, Enum):
    """Release status values."""
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    RELEASED = "released"
    ARCHIVED = "archived"


class Release(Base):
    """
    Release model.

    Tracks are kept in the order the creator arranged them. The artwork
    is optional; when absent every artwork column holds its empty value.
    """

    __tablename__ = "releases"

    id = Column(String(24), primary_key=True, default=new_object_id)
    creator = Column(String(24), nullable=False)

    name = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False, default=ReleaseType.SINGLE.value)
    tracks = Column(JSONDocument, nullable=False, default=list)  # Ordered track ids
    release_date = Column(DateTime, nullable=False)
    description = Column(Text, nullable=False, default="")
    status = Column(String(20), nullable=False, default=ReleaseStatus.DRAFT.value)
    distribution_channels = Column(JSONDocument, nullable=False, default=list)
    meta = Column("metadata", JSONDocument, nullable=False, default=dict)

    # Artwork
    artwork_file_name = Column(String(255), nullable=False, default="")
    artwork_file_size = Column(BigInteger, nullable=False, default=0)  # In bytes
    artwork_file_type = Column(String(100), nullable=False, default="")
    artwork_file_url = Column(Text, nullable=False, default="")
    artwork_storage_key = Column(Text, nullable=False, default="")
    artwork = composite(
        StorageReference,
        artwork_file_name,
        artwork_file_size,
        artwork_file_type,
        artwork_file_url,
        artwork_storage_key,
    )

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Release {self.id} type={self.type} status={self.status}>"


Index("ix_releases_creator_created_at", Release.creator, Release.created_at.desc())
Index("ix_releases_status", Release.status)
Index("ix_releases_release_date", Release.release_date)
