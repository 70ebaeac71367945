from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from token_registration.application.exceptions import BackendBusyError, BackendError
from token_registration.application.ports.registration_backend import RegistrationBackendPort
from token_registration.core.config import settings
from token_registration.domain.entities.member import Member
from token_registration.domain.entities.registration_status import RegistrationStatus
from token_registration.domain.entities.selection import Selection
from token_registration.domain.entities.session import Session
from token_registration.infrastructure.backend.wire import (
    member_from_wire,
    session_from_wire,
    status_from_wire,
    submission_payload,
)

BUSY_STATUS = 503


class AppsScriptBackend(RegistrationBackendPort):
    """Registration backend published as a single web-app URL; the `fn` query parameter selects the operation."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url or settings.APPS_SCRIPT_URL
        if not self._base_url:
            raise ValueError("APPS_SCRIPT_URL is required for the registration backend")
        self._client = httpx.AsyncClient(
            timeout=timeout or settings.HTTP_TIMEOUT_SECONDS,
            follow_redirects=True,
            transport=transport,
        )
        self._logger = logging.getLogger(__name__)

    async def search_members(self, branch: str, phone: str) -> list[Member]:
        data = await self._get({"fn": "search", "branch": branch.lower(), "phone": phone}, "Failed to search members")
        results = data.get("results")
        if isinstance(results, list):
            return [member_from_wire(item) for item in results if isinstance(item, dict)]
        if isinstance(data.get("member"), dict):
            return [member_from_wire(data["member"])]
        return []

    async def fetch_schedules(self, branch: str) -> list[Session]:
        data = await self._get({"fn": "schedules", "branch": branch.lower()}, "Failed to fetch schedules")
        return [session_from_wire(item) for item in data.get("items") or [] if isinstance(item, dict)]

    async def registration_status(self) -> RegistrationStatus:
        data = await self._get(
            {"fn": "registration-status"},
            "Failed to get registration status",
            headers={"Cache-Control": "no-cache", "Pragma": "no-cache"},
        )
        return status_from_wire(data)

    async def submit_registration(
        self,
        member: Member,
        selections: list[Selection],
        idempotency_key: str,
    ) -> dict[str, Any]:
        payload = submission_payload(member, selections, idempotency_key)
        # text/plain keeps the request "simple" for the web app, the body is still JSON
        response = await self._send(
            "POST",
            content=json.dumps(payload),
            headers={"Content-Type": "text/plain;charset=utf-8"},
        )
        return self._decode(response)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(
        self,
        params: dict[str, str],
        failure_message: str,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        response = await self._send("GET", params=params, headers={"Accept": "application/json", **(headers or {})})
        data = self._decode(response)
        if not data.get("ok"):
            raise BackendError(str(data.get("error") or failure_message))
        return data

    async def _send(self, method: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, self._base_url, **kwargs)
        except httpx.HTTPError as e:
            self._logger.error("Backend request failed", extra={"error": str(e), "method": method})
            raise BackendError(f"Network error: {e}") from e

        if response.status_code == BUSY_STATUS:
            self._logger.warning("Backend busy", extra={"status": response.status_code, "method": method})
            raise BackendBusyError("Server is busy")
        if response.status_code >= 400:
            self._logger.error(
                "Backend returned error status",
                extra={"status": response.status_code, "method": method, "error": response.text[:200]},
            )
            raise BackendError(f"HTTP error! status: {response.status_code}")
        return response

    def _decode(self, response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            self._logger.error("Malformed backend response", extra={"error": str(e)})
            raise BackendError("Malformed response from server") from e
        if not isinstance(data, dict):
            raise BackendError("Malformed response from server")
        return data
