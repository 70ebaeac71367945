"""
Tests for the token slot rules: five slots, two per category, one slot per session.
"""

from __future__ import annotations

import random

from conftest import make_selection, make_session

from token_registration.application.use_cases.token_selection import (
    MAX_TOKENS_PER_CATEGORY,
    MAX_TOTAL_TOKENS,
    TokenSelectionEngine,
)
from token_registration.domain.entities.placement import RejectReason


def test_third_token_in_category_is_rejected():
    """Tennis-A and Tennis-B fill the category, Tennis-C is refused and the first two stay put."""
    engine = TokenSelectionEngine()
    tennis_a = make_selection("T-A", "Tennis")
    tennis_b = make_selection("T-B", "Tennis")

    assert engine.place(0, tennis_a).ok
    assert engine.place(1, tennis_b).ok
    result = engine.place(2, make_selection("T-C", "Tennis"))

    assert not result.ok
    assert result.reason == RejectReason.category_full
    assert engine.slots()[0] == tennis_a
    assert engine.slots()[1] == tennis_b
    assert engine.slots()[2] is None


def test_same_session_in_two_slots_is_rejected():
    engine = TokenSelectionEngine()
    assert engine.place(0, make_selection("S1", "Swim")).ok

    result = engine.place(1, make_selection("S1", "Swim"))

    assert result.reason == RejectReason.duplicate_session
    assert engine.slots()[1] is None


def test_replacing_same_selection_is_idempotent():
    engine = TokenSelectionEngine()
    selection = make_selection("S1", "Swim")

    first = engine.place(0, selection)
    before = engine.slots()
    second = engine.place(0, selection)

    assert first.ok and second.ok
    assert engine.slots() == before


def test_repicking_a_slot_does_not_count_its_own_selection():
    """A full category can still be edited in place."""
    engine = TokenSelectionEngine()
    engine.place(0, make_selection("T-A", "Tennis"))
    engine.place(1, make_selection("T-B", "Tennis"))

    result = engine.place(1, make_selection("T-C", "Tennis"))

    assert result.ok
    assert engine.slots()[1].session_id == "T-C"
    assert engine.category_count("Tennis") == 2


def test_slot_index_out_of_range_is_rejected():
    engine = TokenSelectionEngine()
    assert engine.place(MAX_TOTAL_TOKENS, make_selection("S1", "Swim")).reason == RejectReason.invalid_slot
    assert engine.place(-1, make_selection("S1", "Swim")).reason == RejectReason.invalid_slot
    assert engine.filled_count() == 0


def test_add_fills_first_empty_slot_until_full():
    engine = TokenSelectionEngine()
    picks = [
        make_selection("T-A", "Tennis"),
        make_selection("S-A", "Swim"),
        make_selection("F-A", "Football"),
        make_selection("G-A", "Gym"),
        make_selection("D-A", "Dance"),
    ]
    engine.place(2, picks[0])

    for pick in picks[1:]:
        assert engine.add(pick).ok

    assert [s.session_id for s in engine.slots()] == ["S-A", "F-A", "T-A", "G-A", "D-A"]
    assert not engine.can_add_more()
    assert engine.add(make_selection("Y-A", "Yoga")).reason == RejectReason.no_free_slot


def test_validate_requires_at_least_one_complete_selection():
    engine = TokenSelectionEngine()
    assert engine.validate() is False

    engine.place(3, make_selection("S1", "Swim"))
    assert engine.validate() is True

    engine.clear(3)
    assert engine.validate() is False


def test_validate_rejects_incomplete_selection():
    engine = TokenSelectionEngine()
    engine.place(0, make_selection("", "Swim"))

    assert engine.is_complete(0) is False
    assert engine.validate() is False


def test_is_complete():
    engine = TokenSelectionEngine()
    engine.place(0, make_selection("S1", "Swim"))

    assert engine.is_complete(0) is True
    assert engine.is_complete(1) is False
    assert engine.is_complete(99) is False


def test_category_counts():
    engine = TokenSelectionEngine()
    engine.place(0, make_selection("T-A", "Tennis"))
    engine.place(1, make_selection("S-A", "Swim"))
    engine.place(4, make_selection("T-B", "Tennis"))

    counts = {(c.category, c.count, c.max_reached) for c in engine.category_counts()}

    assert counts == {("Tennis", 2, True), ("Swim", 1, False)}
    assert engine.is_category_maxed("Tennis")
    assert not engine.is_category_maxed("Swim")
    assert engine.progress_text() == "3/5 tokens"


def test_available_categories_respect_counts_and_snapshot():
    engine = TokenSelectionEngine()
    sessions = [
        make_session("T-A", "Tennis"),
        make_session("T-B", "Tennis"),
        make_session("S-A", "Swim"),
        make_session("G-A", "Gym", available=0),
    ]
    engine.place(0, make_selection("T-A", "Tennis"))
    engine.place(1, make_selection("T-B", "Tennis"))
    categories = ["Gym", "Swim", "Tennis"]

    assert engine.available_categories_for_new_pick(categories) == ["Gym", "Swim"]
    assert engine.available_categories_for_new_pick(categories, sessions) == ["Swim"]
    # editing slot 1 frees a Tennis place for that slot
    assert set(engine.available_categories_for_new_pick(categories, sessions, slot_index=1)) == {"Swim", "Tennis"}


def test_available_categories_keep_own_pick_when_session_filled_up():
    """A slot holding the last place of a now-full category can still see that category."""
    engine = TokenSelectionEngine()
    engine.place(0, make_selection("G-A", "Gym"))
    sessions = [make_session("G-A", "Gym", available=0), make_session("S-A", "Swim")]

    assert engine.available_categories_for_new_pick(["Gym", "Swim"], sessions) == ["Swim"]
    assert engine.available_categories_for_new_pick(["Gym", "Swim"], sessions, slot_index=0) == ["Gym", "Swim"]


def test_sessions_for_pick_hides_taken_and_full_sessions():
    engine = TokenSelectionEngine()
    sessions = [
        make_session("T-A", "Tennis"),
        make_session("T-B", "Tennis"),
        make_session("T-C", "Tennis", available=0),
        make_session("S-A", "Swim"),
    ]
    engine.place(0, make_selection("T-A", "Tennis"))

    assert [s.id for s in engine.sessions_for_pick("Tennis", sessions, slot_index=1)] == ["T-B"]
    assert [s.id for s in engine.sessions_for_pick("Tennis", sessions, slot_index=0)] == ["T-A", "T-B"]


def test_clear_sessions_and_clear_all():
    engine = TokenSelectionEngine()
    engine.place(0, make_selection("T-A", "Tennis"))
    engine.place(2, make_selection("S-A", "Swim"))
    engine.place(4, make_selection("F-A", "Football"))

    assert engine.clear_sessions(["S-A", "F-A", "missing"]) == [2, 4]
    assert [s.session_id for s in engine.selections()] == ["T-A"]

    engine.clear_all()
    assert engine.slots() == (None,) * MAX_TOTAL_TOKENS


def test_random_place_and_clear_sequences_keep_invariants():
    """Whatever the call sequence, the slot array never breaks the rules."""
    rng = random.Random(20241018)
    categories = ["Tennis", "Swim", "Football"]
    pool = [make_selection(f"{c[0]}-{n}", c) for c in categories for n in range(4)]

    for _ in range(200):
        engine = TokenSelectionEngine()
        for _ in range(40):
            slot = rng.randrange(-1, MAX_TOTAL_TOKENS + 1)
            if rng.random() < 0.75:
                before = engine.slots()
                result = engine.place(slot, rng.choice(pool))
                if not result.ok:
                    assert engine.slots() == before
            else:
                engine.clear(slot)

            filled = engine.selections()
            assert len(filled) <= MAX_TOTAL_TOKENS
            for category in categories:
                assert sum(1 for s in filled if s.category == category) <= MAX_TOKENS_PER_CATEGORY
            assert len({s.session_id for s in filled}) == len(filled)
            if filled:
                assert engine.validate()
