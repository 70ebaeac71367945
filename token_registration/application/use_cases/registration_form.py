from __future__ import annotations

import logging

from token_registration.application.use_cases.schedule_feed import ScheduleFeedUseCase
from token_registration.application.use_cases.submit_registration import SubmissionSeries, SubmitRegistrationUseCase
from token_registration.application.use_cases.token_selection import TokenSelectionEngine
from token_registration.domain.entities.member import Member
from token_registration.domain.entities.placement import PlacementResult, RejectReason
from token_registration.domain.entities.selection import Selection
from token_registration.domain.entities.submission_outcome import OutcomeKind, SubmissionOutcome


class RegistrationForm:
    """
    One guardian's registration session: chosen member, branch schedule, token slots and submitter.

    A conflict outcome empties the slots holding the sessions the backend
    refused so the guardian only has to re-pick those.
    """

    def __init__(
        self,
        form_id: str,
        schedule_feed: ScheduleFeedUseCase,
        submitter: SubmitRegistrationUseCase,
        engine: TokenSelectionEngine | None = None,
    ) -> None:
        self.form_id = form_id
        self.schedule_feed = schedule_feed
        self.submitter = submitter
        self.engine = engine or TokenSelectionEngine()
        self.member: Member | None = None
        self.cleared_by_conflict: list[int] = []
        self._logger = logging.getLogger(__name__)
        self.submitter.add_outcome_listener(self.handle_outcome)

    @property
    def branch(self) -> str | None:
        return self.schedule_feed.branch

    def select_member(self, member: Member, branch: str | None = None, fetch_now: bool = True) -> None:
        target_branch = branch or member.branch
        self.member = member
        self.schedule_feed.set_branch(target_branch, fetch_now=fetch_now)
        self._reset_selections()
        self._logger.info("Member selected", extra={"form_id": self.form_id, "branch": target_branch})

    def clear_member(self) -> None:
        self.member = None
        self._reset_selections()

    def pick(self, slot_index: int, session_id: str) -> PlacementResult:
        """Place a session from the current snapshot. It must still have room unless it is already this slot's pick."""
        session = self.schedule_feed.find(session_id)
        current = self.engine.slots()[slot_index] if 0 <= slot_index < len(self.engine.slots()) else None
        already_here = current is not None and current.session_id == session_id
        if session is None or (not session.has_room and not already_here):
            return PlacementResult.rejected(RejectReason.session_unavailable, slot_index)
        return self.engine.place(slot_index, Selection.from_session(session))

    def place(self, slot_index: int, selection: Selection) -> PlacementResult:
        return self.engine.place(slot_index, selection)

    def clear_slot(self, slot_index: int) -> None:
        self.engine.clear(slot_index)

    def clear_slots(self) -> None:
        self.engine.clear_all()

    def available_categories(self, slot_index: int | None = None) -> list[str]:
        return self.engine.available_categories_for_new_pick(
            self.schedule_feed.all_categories(),
            self.schedule_feed.sessions,
            slot_index,
        )

    def submit(self, new_series: bool = False) -> SubmissionSeries | None:
        if new_series:
            series = self.submitter.start_new_series(self.member, self.engine)
        else:
            series = self.submitter.submit(self.member, self.engine)
        if series is not None:
            self.cleared_by_conflict = []
        return series

    def submit_blocker(self) -> str | None:
        return self.submitter.blocking_reason(self.member, self.engine)

    def handle_outcome(self, outcome: SubmissionOutcome) -> None:
        if outcome.kind == OutcomeKind.conflict:
            self.cleared_by_conflict = self.engine.clear_sessions(outcome.conflicts)
            self._logger.info(
                "Cleared conflicting slots",
                extra={"form_id": self.form_id, "idempotency_key": outcome.idempotency_key},
            )

    def close(self) -> None:
        self.submitter.cancel()
        self.schedule_feed.close()

    def _reset_selections(self) -> None:
        self.engine.clear_all()
        self.submitter.reset()
        self.cleared_by_conflict = []
