"""Structured JSONL step events for collection sessions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import json
from pathlib import Path
from typing import Any, Protocol

from scroll_harvester.errors import DiagnosticsError

EVENT_SCHEMA_VERSION = "v1"
SESSION_STARTED = "session_started"
STEP = "step"
SESSION_FINISHED = "session_finished"
KNOWN_EVENT_TYPES = frozenset({SESSION_STARTED, STEP, SESSION_FINISHED})


class EventSink(Protocol):
    def append(
        self,
        event_type: str,
        *,
        run_id: str,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Record one event."""


@dataclass(frozen=True)
class StepEvent:
    schema_version: str
    event_type: str
    occurred_at: str
    run_id: str
    payload: dict[str, Any]

    def as_dict(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "event_type": self.event_type,
            "occurred_at": self.occurred_at,
            "run_id": self.run_id,
            "payload": self.payload,
        }


class JsonlEventLogger:
    """Append one JSON object per line to `path`."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DiagnosticsError(f"Could not create event log directory for '{self._path}': {exc}") from exc

    @property
    def path(self) -> Path:
        return self._path

    def append(
        self,
        event_type: str,
        *,
        run_id: str,
        payload: dict[str, Any] | None = None,
        occurred_at: datetime | None = None,
    ) -> dict[str, Any]:
        event = build_event(event_type, run_id=run_id, payload=payload, occurred_at=occurred_at)
        try:
            line = json.dumps(event, sort_keys=True)
        except (TypeError, ValueError) as exc:
            raise DiagnosticsError(f"Event '{event_type}' payload is not JSON serializable: {exc}") from exc
        try:
            with self._path.open("a", encoding="utf-8") as stream:
                stream.write(line)
                stream.write("\n")
        except OSError as exc:
            raise DiagnosticsError(f"Could not append to event log '{self._path}': {exc}") from exc
        return event


def build_event(
    event_type: str,
    *,
    run_id: str,
    payload: dict[str, Any] | None = None,
    occurred_at: datetime | None = None,
) -> dict[str, Any]:
    resolved_payload = payload if payload is not None else {}
    if not isinstance(resolved_payload, dict):
        raise DiagnosticsError("payload must be a dictionary.")
    if event_type not in KNOWN_EVENT_TYPES:
        raise DiagnosticsError(
            f"Unknown event type '{event_type}'. Expected one of: {', '.join(sorted(KNOWN_EVENT_TYPES))}."
        )
    if not run_id.strip():
        raise DiagnosticsError("run_id must be non-empty.")

    resolved_time = occurred_at or datetime.now(timezone.utc)
    if resolved_time.tzinfo is None:
        resolved_time = resolved_time.replace(tzinfo=timezone.utc)
    return StepEvent(
        schema_version=EVENT_SCHEMA_VERSION,
        event_type=event_type,
        occurred_at=resolved_time.isoformat(),
        run_id=run_id.strip(),
        payload=resolved_payload,
    ).as_dict()


def read_events(path: str | Path) -> list[dict[str, Any]]:
    """Load every event from a JSONL log, oldest first."""
    events: list[dict[str, Any]] = []
    try:
        lines = Path(path).read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        raise DiagnosticsError(f"Could not read event log '{path}': {exc}") from exc
    for number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            event = json.loads(line)
        except json.JSONDecodeError as exc:
            raise DiagnosticsError(f"Event log '{path}' line {number} is not valid JSON: {exc}") from exc
        if not isinstance(event, dict):
            raise DiagnosticsError(f"Event log '{path}' line {number} is not an object.")
        events.append(event)
    return events
