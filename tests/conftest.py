from __future__ import annotations

import asyncio
from typing import Any

import pytest

from token_registration.application.ports.registration_backend import RegistrationBackendPort
from token_registration.domain.entities.member import Member
from token_registration.domain.entities.registration_status import RegistrationStatus
from token_registration.domain.entities.selection import Selection
from token_registration.domain.entities.session import Session


class ScriptedBackend(RegistrationBackendPort):
    """Backend double that answers submissions from a script and records every call."""

    def __init__(self, submit_script: list[Any] | None = None, schedules: dict[str, list[Session]] | None = None) -> None:
        self.submit_script = list(submit_script or [])
        self.schedules = dict(schedules or {})
        self.submitted: list[tuple[str, list[Selection]]] = []
        self.schedule_calls: list[str] = []
        self.search_calls: list[tuple[str, str]] = []
        self.members: list[Member] = []

    @property
    def submitted_keys(self) -> list[str]:
        return [key for key, _ in self.submitted]

    async def search_members(self, branch: str, phone: str) -> list[Member]:
        self.search_calls.append((branch, phone))
        await asyncio.sleep(0)
        return list(self.members)

    async def fetch_schedules(self, branch: str) -> list[Session]:
        self.schedule_calls.append(branch)
        await asyncio.sleep(0)
        return list(self.schedules.get(branch, []))

    async def registration_status(self) -> RegistrationStatus:
        return RegistrationStatus(is_open=True, message="Registration is now open!")

    async def submit_registration(self, member: Member, selections: list[Selection], idempotency_key: str) -> dict[str, Any]:
        self.submitted.append((idempotency_key, list(selections)))
        await asyncio.sleep(0)
        response = self.submit_script.pop(0) if self.submit_script else {"ok": True}
        if isinstance(response, BaseException):
            raise response
        return response


def make_session(session_id: str, category: str, available: int = 5, total: int = 10, branch: str = "main") -> Session:
    return Session(
        id=session_id,
        category=category,
        display_name=f"{category} {session_id}",
        total_capacity=total,
        available_count=available,
        booked_count=total - available,
        branch=branch,
    )


def make_selection(session_id: str, category: str) -> Selection:
    return Selection(category=category, session_id=session_id, display_name=f"{category} {session_id}")


@pytest.fixture
def member() -> Member:
    return Member(member_id="TEST-2024-00001", branch="main", name="Test User", contact="081234567890")


@pytest.fixture
def registered_member() -> Member:
    return Member(
        member_id="TEST-2024-00002",
        branch="main",
        name="Registered User",
        contact="081234567890",
        registration_status="submitted",
    )
