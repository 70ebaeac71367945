from __future__ import annotations

from datetime import datetime
from typing import Any

from token_registration.domain.entities.member import ExistingRegistration, Member
from token_registration.domain.entities.registration_status import CLOSED_MESSAGE, RegistrationStatus
from token_registration.domain.entities.selection import Selection
from token_registration.domain.entities.session import Session


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def session_from_wire(item: dict[str, Any]) -> Session:
    total = _int(item.get("total_slot"))
    booked = _int(item.get("booked_slot"))
    available = item.get("available_slot")
    return Session(
        id=str(item.get("activity_id") or ""),
        category=str(item.get("class_category") or ""),
        display_name=str(item.get("activity_name") or ""),
        total_capacity=total,
        available_count=_int(available, max(total - booked, 0)),
        booked_count=booked,
        branch=item.get("branch"),
    )


def session_to_wire(session: Session) -> dict[str, Any]:
    return {
        "activity_id": session.id,
        "branch": session.branch,
        "class_category": session.category,
        "activity_name": session.display_name,
        "total_slot": session.total_capacity,
        "booked_slot": session.booked_count,
        "available_slot": session.available_count,
    }


def selection_to_wire(selection: Selection) -> dict[str, Any]:
    return {
        "class_category": selection.category,
        "activity_id": selection.session_id,
        "activity_name": selection.display_name,
    }


def selection_from_wire(item: dict[str, Any]) -> Selection:
    return Selection(
        category=str(item.get("class_category") or ""),
        session_id=str(item.get("activity_id") or ""),
        display_name=str(item.get("activity_name") or ""),
    )


def member_from_wire(item: dict[str, Any]) -> Member:
    existing = tuple(
        ExistingRegistration(activity_name=str(r.get("activity_name") or ""), token=_int(r.get("token")))
        for r in item.get("existing_registrations") or []
        if isinstance(r, dict)
    )
    return Member(
        member_id=str(item.get("member_id") or ""),
        branch=str(item.get("branch") or ""),
        name=str(item.get("name") or ""),
        birthdate=str(item.get("birthdate") or ""),
        parent_name=str(item.get("parent_name") or ""),
        contact=str(item.get("contact") or ""),
        registration_status=item.get("registration_status") or None,
        existing_registrations=existing,
    )


def member_to_wire(member: Member) -> dict[str, Any]:
    return {
        "member_id": member.member_id,
        "branch": member.branch,
        "name": member.name,
        "birthdate": member.birthdate,
        "parent_name": member.parent_name,
        "contact": member.contact,
        "registration_status": member.registration_status,
        "existing_registrations": [
            {"activity_name": r.activity_name, "token": r.token} for r in member.existing_registrations
        ],
    }


def status_from_wire(data: dict[str, Any]) -> RegistrationStatus:
    last_checked: datetime | None = None
    raw = data.get("lastChecked")
    if isinstance(raw, str) and raw:
        try:
            last_checked = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            last_checked = None
    return RegistrationStatus(
        is_open=bool(data.get("isOpen")),
        message=str(data.get("message") or CLOSED_MESSAGE),
        last_checked=last_checked,
    )


def submission_payload(member: Member, selections: list[Selection], idempotency_key: str) -> dict[str, Any]:
    return {
        "member": member_to_wire(member),
        "selections": [selection_to_wire(s) for s in selections],
        "request_id": idempotency_key,
    }
