from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from token_registration.domain.entities.member import Member
from token_registration.domain.entities.registration_status import RegistrationStatus
from token_registration.domain.entities.selection import Selection
from token_registration.domain.entities.session import Session


class RegistrationBackendPort(ABC):
    @abstractmethod
    async def search_members(self, branch: str, phone: str) -> list[Member]:
        """Look up members of a branch by normalized phone digits."""
        raise NotImplementedError

    @abstractmethod
    async def fetch_schedules(self, branch: str) -> list[Session]:
        """Full schedule snapshot for a branch."""
        raise NotImplementedError

    @abstractmethod
    async def registration_status(self) -> RegistrationStatus:
        raise NotImplementedError

    @abstractmethod
    async def submit_registration(
        self,
        member: Member,
        selections: list[Selection],
        idempotency_key: str,
    ) -> dict[str, Any]:
        """
        Send one submission attempt. Returns the decoded response body.
        Raises BackendBusyError when the backend is overloaded and BackendError for anything else.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
