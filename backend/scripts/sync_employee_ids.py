#!/usr/bin/env python3
"""Employee ID sync for one organization.

Run from the backend/ directory:

    python3 scripts/sync_employee_ids.py ORG_ID [--dry-run] [--verbose]

Reads the organization's ID format and employee directory from Cosmos DB and
gives every employee whose stored ID does not fit the format a new one. With
--dry-run the planned changes are only logged.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from staffid.core.config import Settings  # noqa: E402
from staffid.models.employee_id import SyncResult  # noqa: E402
from staffid.services.directory_service import DirectoryService  # noqa: E402

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Reconcile stored employee IDs with the organization's ID format",
    )
    parser.add_argument("org_id", help="Organization id")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log the planned ID changes without writing them",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace, service: DirectoryService | None = None) -> SyncResult:
    settings = Settings()
    service = service or DirectoryService()
    await service.initialize(settings)
    if not service.initialized:
        raise SystemExit("Cosmos DB is not configured (COSMOS_DB_ENDPOINT / COSMOS_DB_KEY)")

    try:
        fmt, is_default = await service.get_id_format(args.org_id)
        logger.info("ID format for %s: %s%s", args.org_id, fmt, " (default)" if is_default else "")

        result = await service.sync_organization(args.org_id, dry_run=args.dry_run)
    finally:
        await service.close()

    logger.info("=" * 50)
    if args.dry_run:
        logger.info("[DRY RUN] %d employee IDs would be updated", result.fixed)
    else:
        logger.info("Employee ID sync complete!")
        logger.info("Fixed: %d", result.fixed)
    for error in result.errors:
        logger.warning("Error: %s", error)
    return result


def main() -> None:
    args = parse_args()
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(message)s")

    result = asyncio.run(run(args))
    sys.exit(1 if result.errors else 0)


if __name__ == "__main__":
    main()
