"""
Script Model

Screenplays uploaded by filmmakers.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Index, String, Text
from sqlalchemy.orm import composite

from studiobase.database import Base
from studiobase.models.base import ContentAddressedReference, new_object_id


class ScriptUploadStatus(str, Enum):
    """Script upload status values."""
    READY = "ready"
    PROCESSING = "processing"
    ERROR = "error"


class Script(Base):
    """
    Uploaded script model.

    The SHA-256 of the uploaded file is the deduplication key: no two
    scripts may share it.
    """

    __tablename__ = "scripts"

    id = Column(String(24), primary_key=True, default=new_object_id)
    user = Column(String(24), nullable=False)

    # Basic metadata
    title = Column(String(255), nullable=False)
    filmmaker = Column(String(255), nullable=False)
    project = Column(String(255), nullable=False, default="")
    category = Column(String(100), nullable=False, default="")
    description = Column(Text, nullable=False, default="")

    # Script file
    script_file_name = Column(String(255), nullable=False)
    script_file_size = Column(BigInteger, nullable=False)  # In bytes
    script_file_type = Column(String(100), nullable=False)
    script_file_url = Column(Text, nullable=False)
    script_storage_key = Column(Text, nullable=False)
    script_content_hash = Column(String(64), nullable=True)  # SHA-256, lowercase hex
    script = composite(
        ContentAddressedReference,
        script_file_name,
        script_file_size,
        script_file_type,
        script_file_url,
        script_storage_key,
        script_content_hash,
    )

    upload_status = Column(String(20), nullable=False, default=ScriptUploadStatus.READY.value)
    released = Column(Boolean, nullable=False, default=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Script {self.id} user={self.user} status={self.upload_status}>"


Index("ix_scripts_user_created_at", Script.user, Script.created_at.desc())
Index(
    "ux_scripts_script_content_hash",
    Script.script_content_hash,
    unique=True,
    postgresql_where=Script.script_content_hash.isnot(None),
    sqlite_where=Script.script_content_hash.isnot(None),
)
