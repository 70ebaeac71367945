from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RejectReason(str, Enum):
    category_full = "category_full"
    duplicate_session = "duplicate_session"
    invalid_slot = "invalid_slot"
    no_free_slot = "no_free_slot"
    session_unavailable = "session_unavailable"


@dataclass(frozen=True)
class PlacementResult:
    ok: bool
    slot_index: int | None = None
    reason: RejectReason | None = None

    @classmethod
    def placed(cls, slot_index: int) -> "PlacementResult":
        return cls(ok=True, slot_index=slot_index)

    @classmethod
    def rejected(cls, reason: RejectReason, slot_index: int | None = None) -> "PlacementResult":
        return cls(ok=False, slot_index=slot_index, reason=reason)


@dataclass(frozen=True)
class CategoryCount:
    category: str
    count: int
    max_reached: bool
