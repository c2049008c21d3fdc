"""
Release Routes

Endpoints for managing music releases.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..database import get_db
from ..schemas import ReleaseListResponse, ReleaseResponse
from ..services.releases import get_release_store

logger = logging.getLogger(__name__)
settings = get_settings()
router = APIRouter(prefix="/releases", tags=["releases"])


@router.post("", response_model=ReleaseResponse, status_code=status.HTTP_201_CREATED)
async def create_release(
    data: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
) -> ReleaseResponse:
    """
    Create a release.

    New releases start as drafts unless a status is given.
    """
    release = await get_release_store().create(db, data)
    return ReleaseResponse.model_validate(release)


@router.get("", response_model=ReleaseListResponse)
async def list_releases(
    creator: str,
    limit: int = Query(20, ge=1, le=settings.max_page_size),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> ReleaseListResponse:
    """List a creator's releases, newest first."""
    store = get_release_store()
    releases = await store.list_by_owner(db, creator, limit=limit, offset=offset)
    total = await store.count_by_owner(db, creator)
    return ReleaseListResponse(
        releases=[ReleaseResponse.model_validate(r) for r in releases],
        total=total,
    )


@router.get("/{release_id}", response_model=ReleaseResponse)
async def get_release(
    release_id: str,
    db: AsyncSession = Depends(get_db),
) -> ReleaseResponse:
    """Get release details by ID."""
    release = await get_release_store().get(db, release_id)
    return ReleaseResponse.model_validate(release)


@router.patch("/{release_id}", response_model=ReleaseResponse)
async def update_release(
    release_id: str,
    data: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
) -> ReleaseResponse:
    """
    Update a release.

    Status changes follow the release flow; tracks can only be edited
    while the release is a draft or scheduled.
    """
    release = await get_release_store().update(db, release_id, data)
    return ReleaseResponse.model_validate(release)


@router.delete("/{release_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_release(
    release_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Delete a release. Artwork in object storage is left in place."""
    await get_release_store().delete(db, release_id)
