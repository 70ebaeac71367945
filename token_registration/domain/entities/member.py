from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ExistingRegistration:
    activity_name: str
    token: int


@dataclass(frozen=True)
class Member:
    member_id: str
    branch: str
    name: str
    birthdate: str = ""
    parent_name: str = ""
    contact: str = ""
    registration_status: str | None = None  # non-empty once a registration was completed
    existing_registrations: tuple[ExistingRegistration, ...] = field(default_factory=tuple)

    @property
    def has_registered(self) -> bool:
        return bool(self.registration_status and self.registration_status.strip())
