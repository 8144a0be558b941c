"""Cosmos DB employee directory: ID format configuration, records and ID reservations."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

from azure.cosmos.aio import CosmosClient
from azure.cosmos.exceptions import CosmosResourceExistsError, CosmosResourceNotFoundError

from staffid.core.config import Settings
from staffid.models.employee_id import (
    CreateEmployeeRequest,
    CreateEmployeeResponse,
    DirectoryEntry,
    GenerationResult,
    IdContext,
    IdStatus,
    SyncResult,
)
from staffid.services.directory_sync import find_mismatches, sync_directory
from staffid.services.id_format import DEFAULT_FORMAT, validate_format
from staffid.services.id_generator import MAX_ATTEMPTS, default_strategies, generate_employee_id

logger = logging.getLogger(__name__)

SYNC_ACTOR = "system-sync"

# Employee document field names → DirectoryEntry attribute names
_FIELD_MAP: list[tuple[str, str]] = [
    ("employee_id", "employeeId"),
    ("name", "name"),
    ("email", "email"),
    ("department", "department"),
    ("employee_type", "employeeType"),
    ("location", "location"),
]


class DirectoryServiceError(Exception):
    pass


class DirectoryNotConfiguredError(DirectoryServiceError):
    pass


class IdAlreadyReservedError(DirectoryServiceError):
    pass


class IdConflictError(DirectoryServiceError):
    pass


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _reservation_key(employee_id: str) -> str:
    # Cosmos ids may not contain / \ ? #
    return quote(employee_id, safe="")


class DirectoryService:
    def __init__(self) -> None:
        self.client: CosmosClient | None = None
        self.organizations: Any = None
        self.employees: Any = None
        self.reservations: Any = None
        self.initialized: bool = False
        self.default_format = DEFAULT_FORMAT
        self.max_attempts = MAX_ATTEMPTS
        self.reservation_retries = 3

    async def initialize(self, settings: Settings) -> None:
        if self.initialized:
            return

        self.default_format = settings.DEFAULT_EMPLOYEE_ID_FORMAT
        self.max_attempts = settings.ID_MAX_ATTEMPTS
        self.reservation_retries = settings.ID_RESERVATION_RETRIES

        if not settings.COSMOS_DB_ENDPOINT or not settings.COSMOS_DB_KEY:
            logger.warning("Cosmos DB credentials missing, DirectoryService not initialized")
            return

        self.client = CosmosClient(settings.COSMOS_DB_ENDPOINT, settings.COSMOS_DB_KEY)
        db = self.client.get_database_client(settings.COSMOS_DB_DATABASE)
        self.organizations = db.get_container_client(settings.COSMOS_DB_ORGANIZATIONS_CONTAINER)
        self.employees = db.get_container_client(settings.COSMOS_DB_EMPLOYEES_CONTAINER)
        self.reservations = db.get_container_client(settings.COSMOS_DB_RESERVATIONS_CONTAINER)
        self.initialized = True
        logger.info("DirectoryService initialized (database=%s)", settings.COSMOS_DB_DATABASE)

    async def close(self) -> None:
        if self.client:
            await self.client.close()
        self.client = None
        self.organizations = None
        self.employees = None
        self.reservations = None
        self.initialized = False

    def _require_initialized(self) -> None:
        if not self.initialized:
            raise DirectoryNotConfiguredError("DirectoryService not initialized")

    async def get_id_format(self, org_id: str) -> tuple[str, bool]:
        """The organization's ID format and whether it is the built-in default."""
        self._require_initialized()

        try:
            org = await self.organizations.read_item(item=org_id, partition_key=org_id)
        except CosmosResourceNotFoundError:
            logger.info("Organization %s not found, using default ID format", org_id)
            return self.default_format, True

        fmt = (org.get("documentConfig") or {}).get("employeeIdFormat")
        if not fmt:
            logger.info("Organization %s has no ID format configured, using %s", org_id, self.default_format)
            return self.default_format, True

        valid, errors = validate_format(fmt)
        if not valid:
            logger.warning("Organization %s has invalid ID format %r (%s), using default", org_id, fmt, "; ".join(errors))
            return self.default_format, True
        return fmt, False

    async def list_directory(self, org_id: str) -> list[DirectoryEntry]:
        self._require_initialized()

        query = "SELECT * FROM c WHERE c.orgId = @orgId"
        params: list[dict[str, Any]] = [{"name": "@orgId", "value": org_id}]

        entries: list[DirectoryEntry] = []
        async for item in self.employees.query_items(query=query, parameters=params, partition_key=org_id):
            entries.append(self._transform_entry(item))
        return entries

    async def get_reserved_ids(self, org_id: str) -> set[str]:
        self._require_initialized()

        query = "SELECT VALUE c.employeeId FROM c WHERE c.orgId = @orgId"
        params: list[dict[str, Any]] = [{"name": "@orgId", "value": org_id}]

        reserved: set[str] = set()
        async for employee_id in self.reservations.query_items(query=query, parameters=params, partition_key=org_id):
            if employee_id:
                reserved.add(employee_id)
        return reserved

    async def get_existing_ids(self, org_id: str) -> set[str]:
        entries = await self.list_directory(org_id)
        return {e.stored_id for e in entries} | await self.get_reserved_ids(org_id)

    async def reserve_employee_id(self, org_id: str, employee_id: str, record_id: str) -> None:
        """Claim ``employee_id`` for ``record_id``; fails if anyone holds it already."""
        self._require_initialized()

        try:
            await self.reservations.create_item(
                body={
                    "id": _reservation_key(employee_id),
                    "orgId": org_id,
                    "employeeId": employee_id,
                    "recordId": record_id,
                    "reservedAt": _now(),
                }
            )
        except CosmosResourceExistsError as e:
            raise IdAlreadyReservedError(f"Employee ID {employee_id} is already reserved") from e

    async def release_employee_id(self, org_id: str, employee_id: str) -> None:
        self._require_initialized()

        try:
            await self.reservations.delete_item(item=_reservation_key(employee_id), partition_key=org_id)
        except CosmosResourceNotFoundError:
            logger.debug("No reservation for %s in %s", employee_id, org_id)

    async def issue_employee_id(
        self,
        org_id: str,
        ctx: IdContext,
        record_id: str,
        name: str | None = None,
    ) -> GenerationResult:
        fmt, _ = await self.get_id_format(org_id)
        taken = await self.get_existing_ids(org_id)

        for attempt in range(1, self.reservation_retries + 1):
            result = generate_employee_id(
                fmt,
                taken,
                ctx,
                name=name,
                strategies=default_strategies(self.max_attempts),
            )
            try:
                await self.reserve_employee_id(org_id, result.employee_id, record_id)
            except IdAlreadyReservedError:
                logger.warning(
                    "Employee ID %s reserved concurrently in %s (attempt %d/%d)",
                    result.employee_id,
                    org_id,
                    attempt,
                    self.reservation_retries,
                )
                taken.add(result.employee_id)
                continue
            return result

        raise IdConflictError(f"Could not reserve an employee ID after {self.reservation_retries} attempts")

    async def create_employee(self, org_id: str, request: CreateEmployeeRequest) -> CreateEmployeeResponse:
        record_id = uuid.uuid4().hex
        ctx = IdContext(
            department=request.department,
            employee_type=request.employee_type,
            location=request.location,
        )
        generation = await self.issue_employee_id(org_id, ctx, record_id, name=request.name)

        now = _now()
        doc = {
            "id": record_id,
            "orgId": org_id,
            "employeeId": generation.employee_id,
            "name": request.name,
            "email": request.email,
            "department": request.department,
            "employeeType": request.employee_type,
            "location": request.location,
            "createdAt": now,
            "lastUpdated": now,
        }
        try:
            await self.employees.create_item(body=doc)
        except Exception:
            await self.release_employee_id(org_id, generation.employee_id)
            raise

        logger.info("Created employee %s with ID %s in %s", record_id, generation.employee_id, org_id)
        return CreateEmployeeResponse(employee=self._transform_entry(doc), generation=generation)

    async def update_employee_id(self, org_id: str, entry: DirectoryEntry, new_id: str) -> None:
        await self.reserve_employee_id(org_id, new_id, entry.id)
        try:
            await self.employees.patch_item(
                item=entry.id,
                partition_key=org_id,
                patch_operations=[
                    {"op": "set", "path": "/employeeId", "value": new_id},
                    {"op": "set", "path": "/lastUpdated", "value": _now()},
                    {"op": "set", "path": "/updatedBy", "value": SYNC_ACTOR},
                ],
            )
        except Exception:
            await self.release_employee_id(org_id, new_id)
            raise

        if entry.employee_id:
            await self.release_employee_id(org_id, entry.employee_id)

    async def sync_organization(self, org_id: str, dry_run: bool = False) -> SyncResult:
        """Rewrite mismatched employee IDs.

        With ``dry_run`` nothing is written and ``fixed`` counts the IDs that would change.
        """
        fmt, _ = await self.get_id_format(org_id)
        entries = await self.list_directory(org_id)
        reserved = await self.get_reserved_ids(org_id)

        async def _update(entry: DirectoryEntry, new_id: str) -> None:
            if dry_run:
                logger.info("[DRY RUN] %s: %s -> %s", entry.id, entry.stored_id, new_id)
                return
            await self.update_employee_id(org_id, entry, new_id)

        logger.info("Syncing %d employee IDs in %s against %s", len(entries), org_id, fmt)
        return await sync_directory(fmt, entries, _update, taken=reserved, max_attempts=self.max_attempts)

    async def get_id_status(self, org_id: str) -> IdStatus:
        try:
            fmt, _ = await self.get_id_format(org_id)
            entries = await self.list_directory(org_id)
        except Exception:
            logger.exception("Failed to read employee ID status for %s", org_id)
            return IdStatus(status="error")

        mismatches = len(find_mismatches(fmt, entries))
        return IdStatus(
            total_employees=len(entries),
            mismatches=mismatches,
            status="healthy" if mismatches == 0 else "has_mismatches",
        )

    async def check_connection(self) -> bool:
        if not self.employees:
            return False
        try:
            query = "SELECT VALUE COUNT(1) FROM c"
            async for _ in self.employees.query_items(
                query=query,
                enable_cross_partition_query=True,
            ):
                return True
            return True
        except Exception:
            logger.exception("Cosmos DB connection check failed")
            return False

    def _transform_entry(self, raw: dict[str, Any]) -> DirectoryEntry:
        data: dict[str, Any] = {"id": raw.get("id") or "unknown"}
        for python_key, cosmos_key in _FIELD_MAP:
            data[python_key] = raw.get(cosmos_key)
        return DirectoryEntry(**data)


directory_service = DirectoryService()
