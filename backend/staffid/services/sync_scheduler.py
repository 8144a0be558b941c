from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from staffid.core.config import Settings
from staffid.models.employee_id import SyncResult, SyncState
from staffid.services.directory_service import directory_service

logger = logging.getLogger(__name__)

SyncFn = Callable[[str], Awaitable[SyncResult]]


class SyncScheduler:
    """Runs one delayed directory sync per organization and tracks its state."""

    def __init__(self, run_sync: SyncFn | None = None, delay: float = 2.0) -> None:
        self.run_sync = run_sync
        self.delay = delay
        self.states: dict[str, SyncState] = {}
        self.tasks: dict[str, asyncio.Task[None]] = {}

    def configure(self, settings: Settings) -> None:
        self.delay = settings.SYNC_DELAY_SECONDS

    def get_state(self, org_id: str) -> SyncState:
        return self.states.get(org_id) or SyncState()

    def schedule(self, org_id: str, delay: float | None = None) -> asyncio.Task[None]:
        task = self.tasks.get(org_id)
        if task and not task.done():
            logger.debug("Sync for %s already pending", org_id)
            return task

        task = asyncio.create_task(self._run(org_id, self.delay if delay is None else delay))
        self.tasks[org_id] = task
        return task

    async def _run(self, org_id: str, delay: float) -> None:
        if delay > 0:
            await asyncio.sleep(delay)

        state = SyncState(state="syncing", started_at=datetime.now(timezone.utc))
        self.states[org_id] = state
        try:
            run_sync = self.run_sync or directory_service.sync_organization
            result = await run_sync(org_id)
        except Exception as e:
            logger.exception("Employee ID sync failed for %s", org_id)
            state.state = "error"
            state.error = str(e)
        else:
            state.state = "completed"
            state.result = result
            if result.errors:
                logger.warning("Employee ID sync for %s fixed %d with %d errors", org_id, result.fixed, len(result.errors))
        finally:
            state.finished_at = datetime.now(timezone.utc)

    async def shutdown(self) -> None:
        pending = [t for t in self.tasks.values() if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self.tasks.clear()


sync_scheduler = SyncScheduler()
