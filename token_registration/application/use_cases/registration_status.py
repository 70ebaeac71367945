from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from token_registration.application.exceptions import BackendError
from token_registration.application.ports.registration_backend import RegistrationBackendPort
from token_registration.core.config import settings
from token_registration.domain.entities.registration_status import (
    CLOSED_MESSAGE,
    OPEN_MESSAGE,
    RegistrationStatus,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RegistrationStatusUseCase:
    def __init__(
        self,
        backend: RegistrationBackendPort,
        cache_seconds: float | None = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._backend = backend
        self._ttl = timedelta(
            seconds=settings.REGISTRATION_STATUS_CACHE_SECONDS if cache_seconds is None else cache_seconds
        )
        self._now = now
        self._cached: RegistrationStatus | None = None
        self._cached_at: datetime | None = None
        self.status = RegistrationStatus()
        self.error: str | None = None
        self._logger = logging.getLogger(__name__)

    async def check_status(self) -> RegistrationStatus:
        """Fresh cached status if younger than the TTL, else ask the backend. Falls back to closed on error."""
        now = self._now()
        if self._cached is not None and self._cached_at is not None and now - self._cached_at < self._ttl:
            self.status = self._cached
            return self.status

        self.error = None
        try:
            status = await self._backend.registration_status()
        except BackendError as e:
            self._logger.error("Failed to check registration status", extra={"error": str(e)})
            self.error = "Failed to check registration status"
            self.status = RegistrationStatus(is_open=False, message=CLOSED_MESSAGE, last_checked=now)
            return self.status

        self._store(status, now)
        return self.status

    def set_registration_open(self, is_open: bool) -> RegistrationStatus:
        now = self._now()
        self._store(
            RegistrationStatus(is_open=is_open, message=OPEN_MESSAGE if is_open else CLOSED_MESSAGE, last_checked=now),
            now,
        )
        return self.status

    def _store(self, status: RegistrationStatus, now: datetime) -> None:
        self._cached = status
        self._cached_at = now
        self.status = status
