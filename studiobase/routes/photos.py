"""
Photo Routes

Endpoints for uploaded photographs.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..database import get_db
from ..schemas import CollectionListResponse, PhotoListResponse, PhotoResponse, UploadGroupResponse
from ..services.dedup import get_photo_store

logger = logging.getLogger(__name__)
settings = get_settings()
router = APIRouter(prefix="/photos", tags=["photos"])


@router.post("", response_model=PhotoResponse, status_code=status.HTTP_201_CREATED)
async def create_photo(
    data: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
) -> PhotoResponse:
    """
    Register an uploaded photo.

    A photo whose image hash is already registered is rejected with
    409 and the id of the existing photo.
    """
    photo = await get_photo_store().create(db, data)
    return PhotoResponse.model_validate(photo)


@router.get("", response_model=PhotoListResponse)
async def list_photos(
    user: str,
    limit: int = Query(20, ge=1, le=settings.max_page_size),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> PhotoListResponse:
    """List a user's photos, newest first."""
    store = get_photo_store()
    photos = await store.list_by_owner(db, user, limit=limit, offset=offset)
    total = await store.count_by_owner(db, user)
    return PhotoListResponse(
        photos=[PhotoResponse.model_validate(s) for s in photos],
        total=total,
    )


@router.get("/collections", response_model=CollectionListResponse)
async def list_collections(
    user: str,
    db: AsyncSession = Depends(get_db),
) -> CollectionListResponse:
    """
    List a user's collections, oldest first.

    Each collection carries its photo count and the image of its first
    photo as a preview.
    """
    collections = await get_photo_store().list_collections(db, user)
    return CollectionListResponse(
        collections=[UploadGroupResponse.model_validate(c) for c in collections],
    )


@router.get("/collections/{collection}", response_model=PhotoListResponse)
async def list_collection_photos(
    collection: str,
    user: str,
    limit: int = Query(20, ge=1, le=settings.max_page_size),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> PhotoListResponse:
    """List the photos in one of a user's collections, newest first."""
    store = get_photo_store()
    photos = await store.list_by_collection(db, user, collection, limit=limit, offset=offset)
    total = await store.count_by_group(db, user, collection)
    return PhotoListResponse(
        photos=[PhotoResponse.model_validate(p) for p in photos],
        total=total,
    )


@router.get("/by-hash/{content_hash}", response_model=PhotoResponse)
async def get_photo_by_hash(
    content_hash: str,
    db: AsyncSession = Depends(get_db),
) -> PhotoResponse:
    """Look up a photo by the SHA-256 of its image."""
    photo = await get_photo_store().find_by_content_hash(db, content_hash)
    if not photo:
        raise HTTPException(status_code=404, detail="Photo not found")
    return PhotoResponse.model_validate(photo)


@router.get("/{photo_id}", response_model=PhotoResponse)
async def get_photo(
    photo_id: str,
    db: AsyncSession = Depends(get_db),
) -> PhotoResponse:
    """Get photo details by ID."""
    photo = await get_photo_store().get(db, photo_id)
    return PhotoResponse.model_validate(photo)


@router.patch("/{photo_id}", response_model=PhotoResponse)
async def update_photo(
    photo_id: str,
    data: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
) -> PhotoResponse:
    """Update photo metadata. The owner and content hash cannot change."""
    photo = await get_photo_store().update(db, photo_id, data)
    return PhotoResponse.model_validate(photo)


@router.delete("/{photo_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_photo(
    photo_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Delete a photo record. The image in object storage is left in place."""
    await get_photo_store().delete(db, photo_id)
