from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

from conftest import ScriptedBackend

from token_registration.application.exceptions import BackendError
from token_registration.application.use_cases.registration_status import RegistrationStatusUseCase
from token_registration.domain.entities.registration_status import CLOSED_MESSAGE, RegistrationStatus


class CountingBackend(ScriptedBackend):
    def __init__(self, fail: bool = False) -> None:
        super().__init__()
        self.status_calls = 0
        self.fail = fail

    async def registration_status(self) -> RegistrationStatus:
        self.status_calls += 1
        if self.fail:
            raise BackendError("HTTP error! status: 500")
        return RegistrationStatus(is_open=True, message="Registration is now open!")


class Clock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 26, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


def test_status_is_cached_for_ttl():
    backend = CountingBackend()
    clock = Clock()
    uc = RegistrationStatusUseCase(backend, cache_seconds=300, now=clock)

    first = asyncio.run(uc.check_status())
    clock.now += timedelta(minutes=4)
    second = asyncio.run(uc.check_status())
    clock.now += timedelta(minutes=2)
    asyncio.run(uc.check_status())

    assert first.is_open is True
    assert second == first
    assert backend.status_calls == 2


def test_status_falls_back_to_closed_on_error():
    backend = CountingBackend(fail=True)
    uc = RegistrationStatusUseCase(backend, now=Clock())

    status = asyncio.run(uc.check_status())

    assert status.is_open is False
    assert status.message == CLOSED_MESSAGE
    assert uc.error == "Failed to check registration status"


def test_manual_override_is_cached():
    backend = CountingBackend()
    uc = RegistrationStatusUseCase(backend, now=Clock())

    uc.set_registration_open(False)
    status = asyncio.run(uc.check_status())

    assert status.is_open is False
    assert backend.status_calls == 0
