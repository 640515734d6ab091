"""Diagnostics helpers."""

from .events import (
    EVENT_SCHEMA_VERSION,
    SESSION_FINISHED,
    SESSION_STARTED,
    STEP,
    EventSink,
    JsonlEventLogger,
    build_event,
    read_events,
)

__all__ = [
    "EVENT_SCHEMA_VERSION",
    "SESSION_FINISHED",
    "SESSION_STARTED",
    "STEP",
    "EventSink",
    "JsonlEventLogger",
    "build_event",
    "read_events",
]
