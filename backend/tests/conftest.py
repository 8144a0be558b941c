from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.testclient import TestClient

from staffid.core.dependencies import get_directory
from staffid.main import app
from staffid.models.employee_id import DirectoryEntry
from staffid.services.directory_service import DirectoryService

STANDARD_FORMAT = "EMP{YYYY}-{###}"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def directory_entries() -> list[DirectoryEntry]:
    return [
        DirectoryEntry(id="u1", employee_id="EMP2024-001", name="Ada Lovelace", department="Engineering"),
        DirectoryEntry(id="u2", employee_id="EMP2024-002", name="Grace Hopper", department="Engineering"),
        DirectoryEntry(id="u3", employee_id="legacy-17", name="Alan Turing", department="Research"),
        DirectoryEntry(id="u4", employee_id=None, name="Edsger Dijkstra"),
    ]


@pytest.fixture
def mock_directory():
    directory = MagicMock(spec=DirectoryService)
    directory.initialized = True
    directory.max_attempts = 100
    directory.get_id_format = AsyncMock(return_value=(STANDARD_FORMAT, False))
    directory.get_existing_ids = AsyncMock(return_value={"EMP2024-001", "EMP2024-002"})
    directory.create_employee = AsyncMock()
    directory.sync_organization = AsyncMock()
    directory.get_id_status = AsyncMock()
    return directory


@pytest.fixture
def directory_client(mock_directory):
    app.dependency_overrides[get_directory] = lambda: mock_directory
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
