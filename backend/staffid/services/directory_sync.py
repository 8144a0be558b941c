"""Reconcile stored employee IDs with the organization's current format."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Collection, Sequence
from datetime import date

from staffid.models.employee_id import DirectoryEntry, SyncResult
from staffid.services.id_generator import MAX_ATTEMPTS, resolve
from staffid.services.sequence import matches_skeleton

logger = logging.getLogger(__name__)

UpdateFn = Callable[[DirectoryEntry, str], Awaitable[None]]


def find_mismatches(fmt: str, employees: Sequence[DirectoryEntry]) -> list[DirectoryEntry]:
    return [e for e in employees if not matches_skeleton(fmt, e.stored_id)]


async def sync_directory(
    fmt: str,
    employees: Sequence[DirectoryEntry],
    update: UpdateFn,
    *,
    taken: Collection[str] = (),
    max_attempts: int = MAX_ATTEMPTS,
    today: date | None = None,
) -> SyncResult:
    """Give every employee whose ID does not fit ``fmt`` a freshly resolved one.

    ``update`` persists one new ID; ``taken`` holds IDs claimed outside the
    directory (reservations) that must not be handed out. Updates run one at a
    time; a failure is recorded in ``errors`` and the pass moves on to the next
    employee.
    """
    result = SyncResult()
    existing = {e.stored_id for e in employees} | set(taken)

    for employee in find_mismatches(fmt, employees):
        old_id = employee.stored_id
        try:
            resolved = resolve(
                fmt,
                existing - {old_id},
                employee.id_context(),
                max_attempts=max_attempts,
                today=today,
            )
            await update(employee, resolved.id)
        except Exception as e:
            logger.warning("Failed to sync employee ID for %s (%s): %s", employee.id, old_id, e)
            result.errors.append(f"{employee.name or employee.id} ({old_id}): {e}")
            continue

        existing.discard(old_id)
        existing.add(resolved.id)
        result.fixed += 1
        logger.info("Employee %s: %s -> %s", employee.id, old_id, resolved.id)

    logger.info("Sync pass finished: %d fixed, %d errors", result.fixed, len(result.errors))
    return result
