from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from staffid.core.dependencies import get_directory
from staffid.models.employee_id import (
    CreateEmployeeRequest,
    CreateEmployeeResponse,
    GenerationResult,
    IdContext,
    IdStatus,
    OrganizationFormat,
    SyncResult,
    SyncState,
)
from staffid.services.directory_service import DirectoryService, IdConflictError
from staffid.services.id_format import preview_format
from staffid.services.id_generator import GenerationError, default_strategies, generate_employee_id
from staffid.services.sync_scheduler import sync_scheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/organizations/{org_id}", tags=["organizations"])


@router.get("/employee-ids/format", response_model=OrganizationFormat)
async def get_format(
    org_id: str,
    directory: DirectoryService = Depends(get_directory),  # noqa: B008
):
    try:
        fmt, is_default = await directory.get_id_format(org_id)
    except Exception as err:
        logger.exception("Failed to read ID format for %s", org_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve employee ID format",
        ) from err

    return OrganizationFormat(format=fmt, is_default=is_default, preview=preview_format(fmt))


@router.get("/employee-ids/next", response_model=GenerationResult)
async def preview_next_id(
    org_id: str,
    department: str | None = None,
    employee_type: str | None = Query(None, alias="employeeType"),
    location: str | None = None,
    name: str | None = None,
    directory: DirectoryService = Depends(get_directory),  # noqa: B008
):
    """The ID a new hire would get right now. Nothing is reserved."""
    try:
        fmt, _ = await directory.get_id_format(org_id)
        existing = await directory.get_existing_ids(org_id)
    except Exception as err:
        logger.exception("Failed to load directory for %s", org_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve employee directory",
        ) from err

    ctx = IdContext(department=department, employee_type=employee_type, location=location)
    try:
        return generate_employee_id(
            fmt,
            existing,
            ctx,
            name=name,
            strategies=default_strategies(directory.max_attempts),
        )
    except GenerationError as err:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(err),
        ) from err


@router.post("/employees", response_model=CreateEmployeeResponse, status_code=status.HTTP_201_CREATED)
async def create_employee(
    org_id: str,
    request: CreateEmployeeRequest,
    directory: DirectoryService = Depends(get_directory),  # noqa: B008
):
    try:
        created = await directory.create_employee(org_id, request)
    except (IdConflictError, GenerationError) as err:
        logger.warning("Employee ID issuance failed for %s: %s", org_id, err)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(err),
        ) from err
    except Exception as err:
        logger.exception("Failed to create employee in %s", org_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create employee",
        ) from err

    sync_scheduler.schedule(org_id)
    return created


@router.post("/employee-ids/sync", response_model=SyncResult)
async def run_sync(
    org_id: str,
    dry_run: bool = Query(False, alias="dryRun"),
    directory: DirectoryService = Depends(get_directory),  # noqa: B008
):
    try:
        return await directory.sync_organization(org_id, dry_run=dry_run)
    except Exception as err:
        logger.exception("Employee ID sync failed for %s", org_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to sync employee IDs",
        ) from err


@router.get("/employee-ids/sync", response_model=SyncState)
async def get_sync_state(org_id: str):
    return sync_scheduler.get_state(org_id)


@router.get("/employee-ids/status", response_model=IdStatus)
async def get_status(
    org_id: str,
    directory: DirectoryService = Depends(get_directory),  # noqa: B008
):
    return await directory.get_id_status(org_id)
