"""Data model contracts for cross-module use."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class LayoutKind(str, Enum):
    CONVENTIONAL = "conventional"
    VIRTUALIZED = "virtualized"


class TerminalState(str, Enum):
    EARLY_STOP = "early_stop"
    EXHAUSTED = "exhausted"
    NO_PROGRESS = "no_progress"


@dataclass(frozen=True)
class MotionStep:
    ordinal: int
    target_delta: int
    duration_ms: int
    is_backward: bool = False


@dataclass(frozen=True)
class LayoutMode:
    kind: LayoutKind = LayoutKind.CONVENTIONAL
    expected_total: int = 0
    framework: str | None = None

    @property
    def is_virtualized(self) -> bool:
        return self.kind is LayoutKind.VIRTUALIZED

    @property
    def has_expected_total(self) -> bool:
        return self.is_virtualized and self.expected_total > 0


CONVENTIONAL_LAYOUT = LayoutMode()


@dataclass(frozen=True)
class CompletionDescriptor:
    terminal_state: TerminalState
    collected: int
    expected: int | None = None

    @property
    def completion_ratio(self) -> float | None:
        if not self.expected:
            return None
        return self.collected / self.expected


class ActionKind(str, Enum):
    SCROLL = "scroll"
    CLICK = "click"


@dataclass(frozen=True)
class PageSnapshot:
    url: str
    title: str
    text_excerpt: str
    step: int
    collected: int


@dataclass(frozen=True)
class ProposedAction:
    kind: ActionKind
    delta: int = 0
    selector: str | None = None

    def __post_init__(self) -> None:
        if self.kind is ActionKind.SCROLL and self.delta == 0:
            raise ValueError("scroll action requires a non-zero delta.")
        if self.kind is ActionKind.CLICK and not (self.selector or "").strip():
            raise ValueError("click action requires a selector.")
