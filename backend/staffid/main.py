from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from staffid.api.v1.router import api_router
from staffid.core.config import settings
from staffid.services.directory_service import directory_service
from staffid.services.sync_scheduler import sync_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    sync_scheduler.configure(settings)
    try:
        await directory_service.initialize(settings)
    except Exception:
        logger.exception("Failed to initialize DirectoryService, continuing without DB")
    yield
    await sync_scheduler.shutdown()
    await directory_service.close()


app = FastAPI(
    title="StaffID API",
    description="Employee ID issuance and directory sync",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/")
async def root():
    return {"message": "StaffID API"}
