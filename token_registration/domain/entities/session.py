from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Session:
    id: str  # activity_id on the wire
    category: str  # class_category
    display_name: str  # activity_name
    total_capacity: int
    available_count: int
    booked_count: int = 0
    branch: str | None = None

    @property
    def has_room(self) -> bool:
        return self.available_count >= 1
