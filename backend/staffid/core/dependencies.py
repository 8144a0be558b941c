from __future__ import annotations

import logging

from fastapi import HTTPException, status

from staffid.services.directory_service import DirectoryService, directory_service

logger = logging.getLogger(__name__)


async def get_directory() -> DirectoryService:
    if not directory_service.initialized:
        logger.warning("Directory request rejected: Cosmos DB not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Employee directory is not configured",
        )
    return directory_service
