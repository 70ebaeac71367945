from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any

from token_registration.application.ports.outcome_store import OutcomeStorePort
from token_registration.domain.entities.submission_outcome import OutcomeKind, SubmissionOutcome


class JsonOutcomeStore(OutcomeStorePort):
    """Keeps the latest outcome per idempotency key in one JSON file so a restart still hides the submit affordance."""

    def __init__(self, data_dir: str = "./data/outcomes", filename: str = "outcomes.json") -> None:
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._file_path = self._data_dir / filename
        self._lock = threading.Lock()
        self._logger = logging.getLogger(__name__)

    def get(self, idempotency_key: str) -> SubmissionOutcome | None:
        with self._lock:
            data = self._load()
        raw = data["outcomes"].get(idempotency_key)
        return self._deserialize(raw) if raw else None

    def put(self, outcome: SubmissionOutcome, member_id: str | None = None) -> None:
        with self._lock:
            data = self._load()
            data["outcomes"][outcome.idempotency_key] = self._serialize(outcome)
            if member_id:
                data["members"][member_id] = outcome.idempotency_key
            self._save(data)

    def latest_for_member(self, member_id: str) -> SubmissionOutcome | None:
        with self._lock:
            data = self._load()
        key = data["members"].get(member_id)
        raw = data["outcomes"].get(key) if key else None
        return self._deserialize(raw) if raw else None

    def _load(self) -> dict[str, Any]:
        """Load the store file, return an empty store if missing or corrupted."""
        empty: dict[str, Any] = {"outcomes": {}, "members": {}, "version": 1}
        if not self._file_path.exists():
            return empty
        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            self._logger.warning("Outcome store unreadable, starting empty", extra={"error": str(e)})
            return empty
        if not isinstance(data, dict):
            self._logger.warning("Outcome store has unexpected shape, starting empty")
            return empty
        data.setdefault("outcomes", {})
        data.setdefault("members", {})
        data.setdefault("version", 1)
        if not isinstance(data["outcomes"], dict) or not isinstance(data["members"], dict):
            self._logger.warning("Outcome store has unexpected shape, starting empty")
            return empty
        return data

    def _save(self, data: dict[str, Any]) -> None:
        """Write atomically through a temp file."""
        temp_path = self._file_path.with_suffix(".json.tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.replace(self._file_path)
        except Exception:
            if temp_path.exists():
                temp_path.unlink()
            raise

    def _serialize(self, outcome: SubmissionOutcome) -> dict[str, Any]:
        return {
            "kind": outcome.kind.value,
            "idempotency_key": outcome.idempotency_key,
            "tracking_id": outcome.tracking_id,
            "conflicts": list(outcome.conflicts),
            "reason": outcome.reason,
            "attempts": outcome.attempts,
        }

    def _deserialize(self, data: dict[str, Any]) -> SubmissionOutcome:
        return SubmissionOutcome(
            kind=OutcomeKind(data.get("kind", OutcomeKind.failed.value)),
            idempotency_key=data.get("idempotency_key", ""),
            tracking_id=data.get("tracking_id"),
            conflicts=tuple(data.get("conflicts") or ()),
            reason=data.get("reason"),
            attempts=data.get("attempts", 1),
        )
