"""
Tests for the HTTP adapter against a mocked transport.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from conftest import make_selection

from token_registration.application.exceptions import BackendBusyError, BackendError
from token_registration.domain.entities.member import Member
from token_registration.infrastructure.backend.apps_script_client import AppsScriptBackend

BASE_URL = "https://backend.example.test/exec"


def _backend(handler) -> AppsScriptBackend:
    return AppsScriptBackend(base_url=BASE_URL, transport=httpx.MockTransport(handler))


def test_search_sends_fn_and_parses_results():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(dict(request.url.params))
        return httpx.Response(
            200,
            json={
                "ok": True,
                "results": [
                    {
                        "member_id": "M-1",
                        "branch": "main",
                        "name": "Test User",
                        "contact": "081234567890",
                        "registration_status": "",
                        "existing_registrations": [{"activity_name": "Swim Basics", "token": 1}],
                    }
                ],
            },
        )

    members = asyncio.run(_backend(handler).search_members("Main", "081234567890"))

    assert seen == {"fn": "search", "branch": "main", "phone": "081234567890"}
    assert members[0].member_id == "M-1"
    assert members[0].has_registered is False
    assert members[0].existing_registrations[0].token == 1


def test_search_accepts_legacy_single_member():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"ok": True, "member": {"member_id": "M-9", "branch": "main", "name": "Solo"}})

    members = asyncio.run(_backend(handler).search_members("main", "081234567890"))

    assert [m.member_id for m in members] == ["M-9"]


def test_schedules_are_mapped_to_sessions():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["fn"] == "schedules"
        return httpx.Response(
            200,
            json={
                "ok": True,
                "items": [
                    {
                        "activity_id": "66327",
                        "branch": "main",
                        "class_category": "Tennis",
                        "activity_name": "Ministar Tennis - Tuesday, 03:00 pm",
                        "total_slot": 8,
                        "booked_slot": 3,
                        "available_slot": 5,
                    }
                ],
            },
        )

    sessions = asyncio.run(_backend(handler).fetch_schedules("main"))

    assert sessions[0].id == "66327"
    assert sessions[0].category == "Tennis"
    assert sessions[0].available_count == 5
    assert sessions[0].total_capacity == 8


def test_unsuccessful_lookup_raises_with_backend_text():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"ok": False, "error": "Branch not found"})

    with pytest.raises(BackendError, match="Branch not found"):
        asyncio.run(_backend(handler).fetch_schedules("nowhere"))


def test_registration_status_parses_timestamp():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"ok": True, "isOpen": True, "message": "Registration is now open!", "lastChecked": "2024-01-26T02:00:00Z"},
        )

    status = asyncio.run(_backend(handler).registration_status())

    assert status.is_open is True
    assert status.last_checked.year == 2024


def test_submit_posts_json_as_text_plain():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["content_type"] = request.headers["content-type"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"ok": True, "queued": True, "request_id": "key-1"})

    member = Member(member_id="M-1", branch="main", name="Test User")
    body = asyncio.run(_backend(handler).submit_registration(member, [make_selection("66327", "Tennis")], "key-1"))

    assert body == {"ok": True, "queued": True, "request_id": "key-1"}
    assert captured["method"] == "POST"
    assert captured["content_type"].startswith("text/plain")
    assert captured["body"]["request_id"] == "key-1"
    assert captured["body"]["member"]["member_id"] == "M-1"
    assert captured["body"]["selections"] == [
        {"class_category": "Tennis", "activity_id": "66327", "activity_name": "Tennis 66327"}
    ]


def test_status_503_is_busy_and_other_errors_are_hard():
    def busy(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    def broken(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    def garbage(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>not json</html>")

    def offline(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    member = Member(member_id="M-1", branch="main", name="Test User")
    selections = [make_selection("66327", "Tennis")]

    with pytest.raises(BackendBusyError):
        asyncio.run(_backend(busy).submit_registration(member, selections, "k"))
    with pytest.raises(BackendError, match="HTTP error! status: 500"):
        asyncio.run(_backend(broken).submit_registration(member, selections, "k"))
    with pytest.raises(BackendError, match="Malformed response"):
        asyncio.run(_backend(garbage).submit_registration(member, selections, "k"))
    with pytest.raises(BackendError, match="Network error"):
        asyncio.run(_backend(offline).submit_registration(member, selections, "k"))


def test_missing_url_is_rejected(monkeypatch):
    from token_registration.core.config import settings

    monkeypatch.setattr(settings, "APPS_SCRIPT_URL", None)
    with pytest.raises(ValueError):
        AppsScriptBackend()
