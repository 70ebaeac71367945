from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class OutcomeKind(str, Enum):
    accepted = "accepted"
    queued = "queued"
    conflict = "conflict"
    failed = "failed"


EXHAUSTED_RETRIES = "exhausted_retries"


@dataclass(frozen=True)
class SubmissionOutcome:
    kind: OutcomeKind
    idempotency_key: str
    tracking_id: str | None = None  # queued only: server id, falls back to the idempotency key
    conflicts: tuple[str, ...] = ()  # conflict only: session ids to re-choose
    reason: str | None = None  # failed only: raw error text
    attempts: int = 1

    @classmethod
    def accepted(cls, key: str, attempts: int = 1) -> "SubmissionOutcome":
        return cls(kind=OutcomeKind.accepted, idempotency_key=key, attempts=attempts)

    @classmethod
    def queued(cls, key: str, tracking_id: str | None = None, attempts: int = 1) -> "SubmissionOutcome":
        return cls(kind=OutcomeKind.queued, idempotency_key=key, tracking_id=tracking_id or key, attempts=attempts)

    @classmethod
    def conflict(cls, key: str, session_ids: list[str], attempts: int = 1) -> "SubmissionOutcome":
        return cls(kind=OutcomeKind.conflict, idempotency_key=key, conflicts=tuple(session_ids), attempts=attempts)

    @classmethod
    def failed(cls, key: str, reason: str, attempts: int = 1) -> "SubmissionOutcome":
        return cls(kind=OutcomeKind.failed, idempotency_key=key, reason=reason, attempts=attempts)

    def user_message(self) -> str:
        if self.kind == OutcomeKind.accepted:
            return "Registration has been submitted successfully!"
        if self.kind == OutcomeKind.queued:
            return (
                f"Registration queued for processing (ID: {(self.tracking_id or '')[-8:]}). "
                "Please wait for confirmation."
            )
        if self.kind == OutcomeKind.conflict:
            return (
                f"Session conflicts detected: {', '.join(self.conflicts)}. "
                "These choices are no longer available, please change them."
            )
        if self.reason == EXHAUSTED_RETRIES:
            return "The server is still busy after several retries. Please try submitting again."
        return self.reason or "Registration failed"
