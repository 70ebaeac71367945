from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from token_registration.application.exceptions import BackendBusyError, BackendError
from token_registration.application.ports.registration_backend import RegistrationBackendPort
from token_registration.application.utils.phone import normalize_phone
from token_registration.domain.entities.member import Member
from token_registration.domain.entities.registration_status import (
    CLOSED_MESSAGE,
    OPEN_MESSAGE,
    RegistrationStatus,
)
from token_registration.domain.entities.selection import Selection
from token_registration.domain.entities.session import Session


class MockRegistrationBackend(RegistrationBackendPort):
    """
    In-memory backend with real capacity bookkeeping.

    Submissions are idempotent on the request id: a replayed id gets the stored
    response and books nothing. `busy_responses` makes the next N submissions
    answer busy, `queue_submissions` answers accepted-but-queued.
    """

    def __init__(
        self,
        sessions: list[Session] | None = None,
        members: list[Member] | None = None,
        is_open: bool = True,
    ) -> None:
        self._sessions: dict[str, Session] = {s.id: s for s in sessions or []}
        self._members: dict[str, Member] = {m.member_id: m for m in members or []}
        self._responses: dict[str, dict[str, Any]] = {}
        self._is_open = is_open
        self.busy_responses = 0
        self.queue_submissions = False
        self.fail_with: str | None = None
        self.submission_keys: list[str] = []
        self._logger = logging.getLogger(__name__)

    @classmethod
    def with_sample_data(cls) -> "MockRegistrationBackend":
        sessions = [
            Session("66327", "Tennis", "Ministar Tennis - Tuesday, 03:00 pm", 8, 5, 3, "main"),
            Session("66328", "Tennis", "Ministar Tennis - Thursday, 03:00 pm", 8, 1, 7, "main"),
            Session("66329", "Tennis", "Junior Tennis - Saturday, 09:00 am", 8, 0, 8, "main"),
            Session("71001", "Swim", "Swim Basics - Monday, 04:00 pm", 10, 6, 4, "main"),
            Session("71002", "Swim", "Swim Stroke - Wednesday, 04:00 pm", 10, 2, 8, "main"),
            Session("80510", "Football", "Mini Football - Friday, 05:00 pm", 16, 9, 7, "main"),
            Session("90220", "Gymnastics", "Kids Gym - Sunday, 10:00 am", 12, 0, 12, "main"),
        ]
        members = [
            Member("TEST-2024-00001", "main", "Test User", "2020-01-01", "Test Parent", "081234567890"),
            Member(
                "TEST-2024-00002",
                "main",
                "Registered User",
                "2019-05-10",
                "Test Parent",
                "081234567890",
                registration_status="submitted",
            ),
        ]
        return cls(sessions=sessions, members=members)

    def session(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def set_open(self, is_open: bool) -> None:
        self._is_open = is_open

    async def search_members(self, branch: str, phone: str) -> list[Member]:
        digits = normalize_phone(phone)
        return [
            m
            for m in self._members.values()
            if m.branch.lower() == branch.lower() and digits and normalize_phone(m.contact).endswith(digits)
        ]

    async def fetch_schedules(self, branch: str) -> list[Session]:
        return [s for s in self._sessions.values() if (s.branch or "").lower() == branch.lower()]

    async def registration_status(self) -> RegistrationStatus:
        return RegistrationStatus(
            is_open=self._is_open,
            message=OPEN_MESSAGE if self._is_open else CLOSED_MESSAGE,
            last_checked=datetime.now(timezone.utc),
        )

    async def submit_registration(
        self,
        member: Member,
        selections: list[Selection],
        idempotency_key: str,
    ) -> dict[str, Any]:
        self.submission_keys.append(idempotency_key)

        if self.busy_responses > 0:
            self.busy_responses -= 1
            raise BackendBusyError("Server is busy")
        if self.fail_with:
            raise BackendError(self.fail_with)

        if idempotency_key in self._responses:
            self._logger.info("Replayed submission", extra={"idempotency_key": idempotency_key})
            return dict(self._responses[idempotency_key])

        known = self._members.get(member.member_id, member)
        if known.has_registered:
            response: dict[str, Any] = {"ok": False, "error": "Member has already submitted registration"}
            self._responses[idempotency_key] = response
            return dict(response)

        conflicts = [
            s.session_id
            for s in selections
            if s.session_id not in self._sessions or not self._sessions[s.session_id].has_room
        ]
        if conflicts:
            response = {"ok": False, "conflicts": conflicts}
            self._responses[idempotency_key] = response
            return dict(response)

        for s in selections:
            current = self._sessions[s.session_id]
            self._sessions[s.session_id] = replace(
                current,
                available_count=current.available_count - 1,
                booked_count=current.booked_count + 1,
            )
        self._members[member.member_id] = replace(known, registration_status="submitted")

        if self.queue_submissions:
            response = {"ok": True, "queued": True, "request_id": idempotency_key}
        else:
            response = {"ok": True}
        self._responses[idempotency_key] = response
        self._logger.info(
            "Mock registration stored",
            extra={"idempotency_key": idempotency_key, "member_id": member.member_id, "selection_count": len(selections)},
        )
        return dict(response)
