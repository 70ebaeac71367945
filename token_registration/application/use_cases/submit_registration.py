from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from token_registration.application.exceptions import BackendBusyError, BackendError
from token_registration.application.ports.outcome_store import OutcomeStorePort
from token_registration.application.ports.registration_backend import RegistrationBackendPort
from token_registration.application.use_cases.token_selection import TokenSelectionEngine
from token_registration.application.utils.backoff import DEFAULT_DELAYS_MS, backoff_delay_ms
from token_registration.application.utils.idempotency import new_idempotency_key
from token_registration.application.utils.latest_task import LatestTask
from token_registration.domain.entities.member import Member
from token_registration.domain.entities.selection import Selection
from token_registration.domain.entities.submission_outcome import (
    EXHAUSTED_RETRIES,
    OutcomeKind,
    SubmissionOutcome,
)


class SubmissionPhase(str, Enum):
    idle = "idle"
    attempting = "attempting"
    backoff = "backoff"
    accepted = "accepted"
    queued = "queued"
    conflict = "conflict"
    failed = "failed"


TERMINAL_PHASES = {SubmissionPhase.accepted, SubmissionPhase.queued, SubmissionPhase.conflict, SubmissionPhase.failed}

_PHASE_FOR_KIND = {
    OutcomeKind.accepted: SubmissionPhase.accepted,
    OutcomeKind.queued: SubmissionPhase.queued,
    OutcomeKind.conflict: SubmissionPhase.conflict,
    OutcomeKind.failed: SubmissionPhase.failed,
}


@dataclass(frozen=True)
class SubmissionProgress:
    idempotency_key: str
    attempt: int  # number of busy responses so far
    delay_ms: int

    def user_message(self) -> str:
        return f"Server busy, still trying (attempt {self.attempt})"


@dataclass
class SubmissionSeries:
    idempotency_key: str
    member: Member
    selections: tuple[Selection, ...]
    attempts: int = 0
    task: asyncio.Task[Any] | None = field(default=None, repr=False)

    async def wait(self) -> SubmissionOutcome | None:
        """Outcome of the series, or None if it was superseded or cancelled."""
        if self.task is None:
            return None
        await asyncio.wait({self.task})
        if self.task.cancelled():
            return None
        return self.task.result()


def interpret_submit_response(body: Any, idempotency_key: str, attempts: int = 1) -> SubmissionOutcome:
    """
    Map a decoded submission response to an outcome.
    `queued` and `conflicts` are treated as exclusive: a successful response never yields a conflict.
    """
    if not isinstance(body, dict):
        return SubmissionOutcome.failed(idempotency_key, "Malformed response from server", attempts)

    ok = body.get("ok", body.get("accepted"))
    if ok is True:
        if body.get("queued"):
            tracking_id = body.get("request_id") or body.get("trackingId")
            return SubmissionOutcome.queued(idempotency_key, str(tracking_id) if tracking_id else None, attempts)
        return SubmissionOutcome.accepted(idempotency_key, attempts)

    conflicts = body.get("conflicts")
    if isinstance(conflicts, list) and conflicts:
        return SubmissionOutcome.conflict(idempotency_key, [str(c) for c in conflicts], attempts)

    return SubmissionOutcome.failed(idempotency_key, str(body.get("error") or "Registration failed"), attempts)


class SubmitRegistrationUseCase:
    """
    Drives one registration form's submissions against the backend.

    A series gets one idempotency key that every retry reuses. Busy responses
    are retried on a fixed escalating schedule; every other response ends the
    series with exactly one outcome. Starting a new series cancels the current
    one, and a cancelled series never reports anything.
    """

    def __init__(
        self,
        backend: RegistrationBackendPort,
        outcome_store: OutcomeStorePort | None = None,
        delays_ms: Sequence[int] = DEFAULT_DELAYS_MS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        key_factory: Callable[[], str] = new_idempotency_key,
        on_outcome: Callable[[SubmissionOutcome], None] | None = None,
        on_progress: Callable[[SubmissionProgress], None] | None = None,
    ) -> None:
        self._backend = backend
        self._outcome_store = outcome_store
        self._delays_ms = tuple(delays_ms)
        self._sleep = sleep
        self._key_factory = key_factory
        self._outcome_listeners: list[Callable[[SubmissionOutcome], None]] = [on_outcome] if on_outcome else []
        self._progress_listeners: list[Callable[[SubmissionProgress], None]] = [on_progress] if on_progress else []
        self._latest = LatestTask()
        self._series: SubmissionSeries | None = None
        self._phase = SubmissionPhase.idle
        self._outcome: SubmissionOutcome | None = None
        self._progress: SubmissionProgress | None = None
        self._logger = logging.getLogger(__name__)

    @property
    def phase(self) -> SubmissionPhase:
        return self._phase

    @property
    def outcome(self) -> SubmissionOutcome | None:
        return self._outcome

    @property
    def progress(self) -> SubmissionProgress | None:
        return self._progress

    @property
    def series(self) -> SubmissionSeries | None:
        return self._series

    @property
    def in_flight(self) -> bool:
        return self._phase in (SubmissionPhase.attempting, SubmissionPhase.backoff)

    def add_outcome_listener(self, listener: Callable[[SubmissionOutcome], None]) -> None:
        self._outcome_listeners.append(listener)

    def add_progress_listener(self, listener: Callable[[SubmissionProgress], None]) -> None:
        self._progress_listeners.append(listener)

    def blocking_reason(self, member: Member | None, engine: TokenSelectionEngine) -> str | None:
        """Why submit() would refuse right now, or None if it would start a series."""
        reason = self._selection_blocker(member, engine)
        if reason:
            return reason
        if self.in_flight:
            return "in_flight"
        if self._phase in TERMINAL_PHASES:
            return "terminal"
        if self._outcome_store is not None and member is not None:
            previous = self._outcome_store.latest_for_member(member.member_id)
            if previous is not None and previous.kind in (OutcomeKind.accepted, OutcomeKind.queued):
                return "already_submitted"
        return None

    def submit(self, member: Member | None, engine: TokenSelectionEngine) -> SubmissionSeries | None:
        """Guarded start. Duplicate clicks while a series runs or an outcome is shown are ignored."""
        reason = self.blocking_reason(member, engine)
        if reason:
            self._logger.info("Submit ignored", extra={"reason": reason})
            return None
        if member is None:
            return None
        return self._begin(member, engine)

    def start_new_series(self, member: Member | None, engine: TokenSelectionEngine) -> SubmissionSeries | None:
        """Explicit restart: supersedes any running series and discards the current outcome."""
        self.reset()
        reason = self._selection_blocker(member, engine)
        if reason:
            self._logger.info("New series refused", extra={"reason": reason})
            return None
        if member is None:
            return None
        return self._begin(member, engine)

    def cancel(self) -> None:
        if self.in_flight and self._series is not None:
            self._logger.info(
                "Submission series abandoned",
                extra={"idempotency_key": self._series.idempotency_key},
            )
        self._latest.cancel()
        if self.in_flight:
            self._phase = SubmissionPhase.idle
            self._series = None
        self._progress = None

    def reset(self) -> None:
        self.cancel()
        self._series = None
        self._outcome = None
        self._phase = SubmissionPhase.idle

    def _selection_blocker(self, member: Member | None, engine: TokenSelectionEngine) -> str | None:
        if member is None:
            return "no_member"
        if member.has_registered:
            return "already_registered"
        if not engine.validate():
            return "invalid_selections"
        return None

    def _begin(self, member: Member, engine: TokenSelectionEngine) -> SubmissionSeries:
        series = SubmissionSeries(
            idempotency_key=self._key_factory(),
            member=member,
            selections=tuple(engine.selections()),
        )
        self._series = series
        self._outcome = None
        self._progress = None
        self._phase = SubmissionPhase.attempting
        series.task = self._latest.replace(lambda generation: self._run(series, generation))
        self._logger.info(
            "Submission series started",
            extra={"idempotency_key": series.idempotency_key, "selection_count": len(series.selections)},
        )
        return series

    async def _run(self, series: SubmissionSeries, generation: int) -> SubmissionOutcome | None:
        busy_count = 0
        while True:
            series.attempts += 1
            if self._latest.is_current(generation):
                self._phase = SubmissionPhase.attempting
            try:
                body = await self._backend.submit_registration(
                    series.member,
                    list(series.selections),
                    series.idempotency_key,
                )
            except BackendBusyError:
                busy_count += 1
                delay_ms = backoff_delay_ms(busy_count, self._delays_ms)
                if delay_ms is None:
                    outcome = SubmissionOutcome.failed(series.idempotency_key, EXHAUSTED_RETRIES, series.attempts)
                    break
                if not self._latest.is_current(generation):
                    return None
                self._phase = SubmissionPhase.backoff
                self._progress = SubmissionProgress(series.idempotency_key, busy_count, delay_ms)
                self._logger.info(
                    "Server busy, backing off",
                    extra={"idempotency_key": series.idempotency_key, "attempt": busy_count, "delay_ms": delay_ms},
                )
                for listener in self._progress_listeners:
                    listener(self._progress)
                await self._sleep(delay_ms / 1000)
                continue
            except BackendError as e:
                outcome = SubmissionOutcome.failed(series.idempotency_key, str(e), series.attempts)
                break
            except Exception as e:
                self._logger.exception(
                    "Unexpected submission error",
                    extra={"idempotency_key": series.idempotency_key, "error": str(e)},
                )
                outcome = SubmissionOutcome.failed(series.idempotency_key, str(e) or type(e).__name__, series.attempts)
                break

            outcome = interpret_submit_response(body, series.idempotency_key, series.attempts)
            break

        return self._resolve(series, generation, outcome)

    def _resolve(
        self,
        series: SubmissionSeries,
        generation: int,
        outcome: SubmissionOutcome,
    ) -> SubmissionOutcome | None:
        if not self._latest.is_current(generation):
            self._logger.info("Discarding outcome of superseded series", extra={"idempotency_key": series.idempotency_key})
            return None

        self._phase = _PHASE_FOR_KIND[outcome.kind]
        self._outcome = outcome
        self._progress = None
        if self._outcome_store is not None:
            try:
                self._outcome_store.put(outcome, member_id=series.member.member_id)
            except Exception as e:
                # Listeners are notified even when the cache write fails.
                self._logger.exception(
                    "Failed to record submission outcome",
                    extra={"idempotency_key": series.idempotency_key, "error": str(e)},
                )

        self._logger.info(
            "Submission resolved",
            extra={
                "idempotency_key": series.idempotency_key,
                "outcome": outcome.kind.value,
                "attempt": series.attempts,
                "reason": outcome.reason,
            },
        )
        for listener in self._outcome_listeners:
            listener(outcome)
        return outcome
