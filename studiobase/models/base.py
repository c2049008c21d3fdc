"""
Model Building Blocks

Identifiers, column types and embedded value objects shared by the
document tables.
"""

import itertools
import os
import threading
import time
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

# Free-form maps and id lists; JSONB on PostgreSQL, plain JSON elsewhere
JSONDocument = JSON().with_variant(JSONB(), "postgresql")

_PROCESS_BYTES = os.urandom(5)
_counter = itertools.count(int.from_bytes(os.urandom(3), "big"))
_counter_lock = threading.Lock()


def new_object_id() -> str:
    """
    Generate a 96-bit identifier as 24 lowercase hex characters.

    Layout: 4-byte big-endian seconds, 5 process-random bytes and a
    3-byte counter, so ids from one process sort by creation.
    """
    with _counter_lock:
        count = next(_counter) & 0xFFFFFF
    return (
        int(time.time()).to_bytes(4, "big")
        + _PROCESS_BYTES
        + count.to_bytes(3, "big")
    ).hex()


@dataclass
class StorageReference:
    """A blob held in external object storage."""
    file_name: str
    file_size: int
    file_type: str
    file_url: str
    storage_key: str


@dataclass
class ContentAddressedReference(StorageReference):
    """Storage reference whose bytes take part in deduplication."""
    content_hash: Optional[str]


@dataclass
class CameraSettings:
    """Exposure settings recorded with a photo."""
    iso: Optional[int]
    aperture: str
    shutter_speed: str
    focal_length: str
