from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from token_registration.application.exceptions import BackendError
from token_registration.application.ports.registration_backend import RegistrationBackendPort
from token_registration.application.utils.latest_task import LatestTask
from token_registration.application.utils.phone import normalize_phone
from token_registration.core.config import settings
from token_registration.domain.entities.member import Member


class MemberSearchUseCase:
    """Debounced phone lookup. Only the newest request may publish results."""

    def __init__(
        self,
        backend: RegistrationBackendPort,
        debounce_ms: int | None = None,
        min_phone_digits: int | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        on_results: Callable[[list[Member]], None] | None = None,
    ) -> None:
        self._backend = backend
        self._debounce_ms = settings.SEARCH_DEBOUNCE_MS if debounce_ms is None else debounce_ms
        self._min_phone_digits = settings.MIN_PHONE_DIGITS if min_phone_digits is None else min_phone_digits
        self._sleep = sleep
        self._on_results = on_results
        self._latest = LatestTask()
        self.results: list[Member] = []
        self.error: str | None = None
        self.loading = False
        self._logger = logging.getLogger(__name__)

    def search(self, branch: str, phone: str, immediate: bool = False) -> asyncio.Task[Any]:
        """Schedule a lookup, superseding any earlier one still debouncing or in flight."""
        return self._latest.replace(lambda generation: self._run(generation, branch, phone, immediate))

    def clear_results(self) -> None:
        self._latest.cancel()
        self.results = []
        self.error = None
        self.loading = False

    async def _run(self, generation: int, branch: str, phone: str, immediate: bool) -> list[Member] | None:
        if not immediate:
            await self._sleep(self._debounce_ms / 1000)

        if not self._latest.is_current(generation):
            return None

        digits = normalize_phone(phone)
        if not branch.strip() or len(digits) < self._min_phone_digits:
            self.results = []
            self.loading = False
            return []

        self.loading = True
        self.error = None
        try:
            members = await self._backend.search_members(branch, digits)
        except BackendError as e:
            if not self._latest.is_current(generation):
                return None
            self._logger.warning("Member search failed", extra={"branch": branch, "error": str(e)})
            self.error = str(e)
            self.results = []
            self.loading = False
            return None

        if not self._latest.is_current(generation):
            return None

        self.results = members
        self.loading = False
        self._logger.info("Member search finished", extra={"branch": branch, "result_count": len(members)})
        if self._on_results is not None:
            self._on_results(members)
        return members
