from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from token_registration.application.exceptions import BackendError
from token_registration.application.ports.registration_backend import RegistrationBackendPort
from token_registration.application.utils.latest_task import LatestTask
from token_registration.core.config import settings
from token_registration.domain.entities.session import Session


class ScheduleFeedUseCase:
    """
    Keeps the schedule snapshot of one branch fresh.

    Live mode polls on a fixed interval; turning it off stops the poller
    outright. Changing branch drops the old snapshot immediately and restarts
    polling from zero, and any fetch started for a previous branch or poller
    generation is discarded when it lands.
    """

    def __init__(
        self,
        backend: RegistrationBackendPort,
        poll_interval_seconds: float | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        live: bool = True,
    ) -> None:
        self._backend = backend
        self._interval = (
            settings.SCHEDULE_POLL_INTERVAL_SECONDS if poll_interval_seconds is None else poll_interval_seconds
        )
        self._sleep = sleep
        self._live = live
        self._branch: str | None = None
        self._poller = LatestTask()
        self.sessions: list[Session] = []
        self.error: str | None = None
        self.loading = False
        self.last_updated: datetime | None = None
        self._logger = logging.getLogger(__name__)

    @property
    def branch(self) -> str | None:
        return self._branch

    @property
    def live(self) -> bool:
        return self._live

    @property
    def polling(self) -> bool:
        return self._poller.running

    def set_branch(self, branch: str, fetch_now: bool = True) -> None:
        """Switch branch. With fetch_now=False the caller fetches itself and polling waits one interval."""
        if branch == self._branch:
            return
        self._branch = branch
        self.sessions = []
        self.error = None
        self.last_updated = None
        self._poller.replace(lambda generation: self._poll(generation, fetch_first=fetch_now))

    def enable_live(self) -> None:
        if self._live:
            return
        self._live = True
        if self._branch:
            self._poller.replace(lambda generation: self._poll(generation, fetch_first=False))

    def disable_live(self) -> None:
        self._live = False
        self._poller.cancel()

    def toggle_live(self) -> bool:
        if self._live:
            self.disable_live()
        else:
            self.enable_live()
        return self._live

    async def refetch(self, branch: str | None = None) -> list[Session]:
        if branch and branch != self._branch:
            self.set_branch(branch)
            return self.sessions
        if not self._branch:
            self.sessions = []
            return self.sessions
        await self._fetch(self._poller.generation, initial=True)
        return self.sessions

    def close(self) -> None:
        self._poller.cancel()

    def sessions_by_category(self, category: str) -> list[Session]:
        return [s for s in self.sessions if s.category == category and s.has_room]

    def available_categories(self) -> list[str]:
        return sorted({s.category for s in self.sessions if s.has_room})

    def all_categories(self) -> list[str]:
        return sorted({s.category for s in self.sessions})

    def find(self, session_id: str) -> Session | None:
        for s in self.sessions:
            if s.id == session_id:
                return s
        return None

    async def _poll(self, generation: int, fetch_first: bool) -> None:
        if fetch_first:
            await self._fetch(generation, initial=True)
        while self._live and self._poller.is_current(generation):
            await self._sleep(self._interval)
            await self._fetch(generation)

    async def _fetch(self, generation: int, initial: bool = False) -> None:
        branch = self._branch
        if not branch:
            return
        if initial:
            self.loading = True
        try:
            sessions = await self._backend.fetch_schedules(branch)
        except BackendError as e:
            if self._poller.is_current(generation):
                self._logger.warning("Schedule fetch failed", extra={"branch": branch, "error": str(e)})
                self.error = str(e)
                if initial:
                    self.loading = False
            return

        if not self._poller.is_current(generation) or branch != self._branch:
            self._logger.info("Discarding stale schedule snapshot", extra={"branch": branch})
            return

        self.sessions = sessions
        self.error = None
        self.last_updated = datetime.now(timezone.utc)
        if initial:
            self.loading = False
