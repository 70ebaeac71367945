from __future__ import annotations

from dataclasses import dataclass

from token_registration.domain.entities.session import Session


@dataclass(frozen=True)
class Selection:
    category: str
    session_id: str
    display_name: str

    @classmethod
    def from_session(cls, session: Session) -> "Selection":
        return cls(category=session.category, session_id=session.id, display_name=session.display_name)

    @property
    def is_complete(self) -> bool:
        return bool(self.category) and bool(self.session_id)
