from __future__ import annotations

from token_registration.application.ports.outcome_store import OutcomeStorePort
from token_registration.domain.entities.submission_outcome import SubmissionOutcome


class MemoryOutcomeStore(OutcomeStorePort):
    def __init__(self) -> None:
        self._outcomes: dict[str, SubmissionOutcome] = {}
        self._latest_by_member: dict[str, str] = {}

    def get(self, idempotency_key: str) -> SubmissionOutcome | None:
        return self._outcomes.get(idempotency_key)

    def put(self, outcome: SubmissionOutcome, member_id: str | None = None) -> None:
        self._outcomes[outcome.idempotency_key] = outcome
        if member_id:
            self._latest_by_member[member_id] = outcome.idempotency_key

    def latest_for_member(self, member_id: str) -> SubmissionOutcome | None:
        key = self._latest_by_member.get(member_id)
        return self._outcomes.get(key) if key else None
