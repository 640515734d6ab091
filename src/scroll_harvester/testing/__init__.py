"""Test-only utilities for deterministic timing assertions."""

from .time_control import ScriptedRandom, SleepRecorder

__all__ = [
    "ScriptedRandom",
    "SleepRecorder",
]
