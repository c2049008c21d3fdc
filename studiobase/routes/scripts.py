"""
Script Routes

Endpoints for uploaded screenplays.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..database import get_db
from ..schemas import ProjectListResponse, ScriptListResponse, ScriptResponse, UploadGroupResponse
from ..services.dedup import get_script_store

logger = logging.getLogger(__name__)
settings = get_settings()
router = APIRouter(prefix="/scripts", tags=["scripts"])


@router.post("", response_model=ScriptResponse, status_code=status.HTTP_201_CREATED)
async def create_script(
    data: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
) -> ScriptResponse:
    """
    Register an uploaded script.

    A script whose content hash is already registered is rejected with
    409 and the id of the existing script.
    """
    script = await get_script_store().create(db, data)
    return ScriptResponse.model_validate(script)


@router.get("", response_model=ScriptListResponse)
async def list_scripts(
    user: str,
    limit: int = Query(20, ge=1, le=settings.max_page_size),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> ScriptListResponse:
    """List a user's scripts, newest first."""
    store = get_script_store()
    scripts = await store.list_by_owner(db, user, limit=limit, offset=offset)
    total = await store.count_by_owner(db, user)
    return ScriptListResponse(
        scripts=[ScriptResponse.model_validate(s) for s in scripts],
        total=total,
    )


@router.get("/projects", response_model=ProjectListResponse)
async def list_projects(
    user: str,
    db: AsyncSession = Depends(get_db),
) -> ProjectListResponse:
    """List a user's projects with a script count each, oldest project first."""
    projects = await get_script_store().list_projects(db, user)
    return ProjectListResponse(
        projects=[UploadGroupResponse.model_validate(p) for p in projects],
    )


@router.get("/projects/{project}", response_model=ScriptListResponse)
async def list_project_scripts(
    project: str,
    user: str,
    limit: int = Query(20, ge=1, le=settings.max_page_size),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> ScriptListResponse:
    """List the scripts in one of a user's projects, newest first."""
    store = get_script_store()
    scripts = await store.list_by_project(db, user, project, limit=limit, offset=offset)
    total = await store.count_by_group(db, user, project)
    return ScriptListResponse(
        scripts=[ScriptResponse.model_validate(s) for s in scripts],
        total=total,
    )


@router.get("/by-hash/{content_hash}", response_model=ScriptResponse)
async def get_script_by_hash(
    content_hash: str,
    db: AsyncSession = Depends(get_db),
) -> ScriptResponse:
    """Look up a script by the SHA-256 of its file."""
    script = await get_script_store().find_by_content_hash(db, content_hash)
    if not script:
        raise HTTPException(status_code=404, detail="Script not found")
    return ScriptResponse.model_validate(script)


@router.get("/{script_id}", response_model=ScriptResponse)
async def get_script(
    script_id: str,
    db: AsyncSession = Depends(get_db),
) -> ScriptResponse:
    """Get script details by ID."""
    script = await get_script_store().get(db, script_id)
    return ScriptResponse.model_validate(script)


@router.patch("/{script_id}", response_model=ScriptResponse)
async def update_script(
    script_id: str,
    data: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
) -> ScriptResponse:
    """Update script metadata. The owner and content hash cannot change."""
    script = await get_script_store().update(db, script_id, data)
    return ScriptResponse.model_validate(script)


@router.delete("/{script_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_script(
    script_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Delete a script record."""
    await get_script_store().delete(db, script_id)
