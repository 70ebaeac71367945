from abc import ABC, abstractmethod

from token_registration.domain.entities.submission_outcome import SubmissionOutcome


class OutcomeStorePort(ABC):
    @abstractmethod
    def get(self, idempotency_key: str) -> SubmissionOutcome | None:
        raise NotImplementedError

    @abstractmethod
    def put(self, outcome: SubmissionOutcome, member_id: str | None = None) -> None:
        """Record the terminal outcome of a series, optionally indexed by member."""
        raise NotImplementedError

    @abstractmethod
    def latest_for_member(self, member_id: str) -> SubmissionOutcome | None:
        raise NotImplementedError
