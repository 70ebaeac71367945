from __future__ import annotations

import logging
from collections.abc import Iterable

from token_registration.domain.entities.placement import CategoryCount, PlacementResult, RejectReason
from token_registration.domain.entities.selection import Selection
from token_registration.domain.entities.session import Session

MAX_TOTAL_TOKENS = 5
MAX_TOKENS_PER_CATEGORY = 2


class TokenSelectionEngine:
    """
    Owns the five token slots of one registration form.

    Every rule is re-derived from the current slot array on each call, and every
    mutation is a single check-then-write, so callers can never observe a state
    with more than two tokens in a category or the same session twice.
    """

    def __init__(self) -> None:
        self._slots: list[Selection | None] = [None] * MAX_TOTAL_TOKENS
        self._logger = logging.getLogger(__name__)

    def slots(self) -> tuple[Selection | None, ...]:
        return tuple(self._slots)

    def selections(self) -> list[Selection]:
        """Filled slots in slot order."""
        return [s for s in self._slots if s is not None]

    def filled_count(self) -> int:
        return len(self.selections())

    def place(self, slot_index: int, selection: Selection) -> PlacementResult:
        """
        Put a selection into a slot, replacing whatever it held.
        The slot's previous content is left out of the checks so re-picking the same slot cannot self-block.
        """
        if not 0 <= slot_index < MAX_TOTAL_TOKENS:
            return PlacementResult.rejected(RejectReason.invalid_slot, slot_index)

        others = self._others(slot_index)

        if self._slots[slot_index] is None and len(others) >= MAX_TOTAL_TOKENS:
            return PlacementResult.rejected(RejectReason.no_free_slot, slot_index)

        if sum(1 for s in others if s.category == selection.category) >= MAX_TOKENS_PER_CATEGORY:
            self._logger.info(
                "Placement rejected",
                extra={"reason": RejectReason.category_full.value, "category": selection.category},
            )
            return PlacementResult.rejected(RejectReason.category_full, slot_index)

        if any(s.session_id == selection.session_id for s in others):
            self._logger.info(
                "Placement rejected",
                extra={"reason": RejectReason.duplicate_session.value, "session_id": selection.session_id},
            )
            return PlacementResult.rejected(RejectReason.duplicate_session, slot_index)

        self._slots[slot_index] = selection
        return PlacementResult.placed(slot_index)

    def add(self, selection: Selection) -> PlacementResult:
        """Place into the first empty slot."""
        for index, current in enumerate(self._slots):
            if current is None:
                return self.place(index, selection)
        return PlacementResult.rejected(RejectReason.no_free_slot)

    def clear(self, slot_index: int) -> None:
        if 0 <= slot_index < MAX_TOTAL_TOKENS:
            self._slots[slot_index] = None

    def clear_all(self) -> None:
        self._slots = [None] * MAX_TOTAL_TOKENS

    def clear_sessions(self, session_ids: Iterable[str]) -> list[int]:
        """Empty every slot holding one of the given sessions. Returns the cleared indices."""
        targets = set(session_ids)
        cleared: list[int] = []
        for index, current in enumerate(self._slots):
            if current is not None and current.session_id in targets:
                self._slots[index] = None
                cleared.append(index)
        return cleared

    def category_count(self, category: str, exclude_slot: int | None = None) -> int:
        return sum(
            1
            for index, s in enumerate(self._slots)
            if s is not None and index != exclude_slot and s.category == category
        )

    def is_category_maxed(self, category: str) -> bool:
        return self.category_count(category) >= MAX_TOKENS_PER_CATEGORY

    def category_counts(self) -> list[CategoryCount]:
        counts: dict[str, int] = {}
        for s in self.selections():
            counts[s.category] = counts.get(s.category, 0) + 1
        return [
            CategoryCount(category=category, count=count, max_reached=count >= MAX_TOKENS_PER_CATEGORY)
            for category, count in counts.items()
        ]

    def available_categories_for_new_pick(
        self,
        all_categories: Iterable[str],
        sessions: Iterable[Session] | None = None,
        slot_index: int | None = None,
    ) -> list[str]:
        """
        Categories the picker may still offer.

        A category needs room (fewer than two tokens, ignoring the slot being edited)
        and, when a snapshot is given, at least one session with a free place or the
        slot's own current pick.
        """
        own = self._slots[slot_index] if slot_index is not None and 0 <= slot_index < MAX_TOTAL_TOKENS else None
        with_room: set[str] | None = None
        if sessions is not None:
            with_room = {s.category for s in sessions if s.has_room}

        result: list[str] = []
        for category in all_categories:
            if self.category_count(category, exclude_slot=slot_index) >= MAX_TOKENS_PER_CATEGORY:
                continue
            if with_room is not None and category not in with_room:
                if own is None or own.category != category:
                    continue
            result.append(category)
        return result

    def sessions_for_pick(
        self,
        category: str,
        sessions: Iterable[Session],
        slot_index: int | None = None,
    ) -> list[Session]:
        """Sessions of a category that can go into the slot: free places, not held elsewhere, or the slot's own pick."""
        own = self._slots[slot_index] if slot_index is not None and 0 <= slot_index < MAX_TOTAL_TOKENS else None
        taken = {s.session_id for s in self._others(slot_index)}
        picks: list[Session] = []
        for session in sessions:
            if session.category != category:
                continue
            if own is not None and session.id == own.session_id:
                picks.append(session)
                continue
            if session.has_room and session.id not in taken:
                picks.append(session)
        return picks

    def is_complete(self, slot_index: int) -> bool:
        if not 0 <= slot_index < MAX_TOTAL_TOKENS:
            return False
        current = self._slots[slot_index]
        return current is not None and current.is_complete

    def can_add_more(self) -> bool:
        return self.filled_count() < MAX_TOTAL_TOKENS

    def progress_text(self) -> str:
        return f"{self.filled_count()}/{MAX_TOTAL_TOKENS} tokens"

    def validate(self) -> bool:
        """Pre-submit gate. Recomputes the invariants from scratch instead of trusting place()."""
        filled = self.selections()
        if not filled or len(filled) > MAX_TOTAL_TOKENS:
            return False

        per_category: dict[str, int] = {}
        seen_sessions: set[str] = set()
        for s in filled:
            if not s.is_complete:
                return False
            per_category[s.category] = per_category.get(s.category, 0) + 1
            if per_category[s.category] > MAX_TOKENS_PER_CATEGORY:
                return False
            if s.session_id in seen_sessions:
                return False
            seen_sessions.add(s.session_id)
        return True

    def _others(self, slot_index: int | None) -> list[Selection]:
        return [s for index, s in enumerate(self._slots) if s is not None and index != slot_index]
