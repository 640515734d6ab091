"""Collection result contracts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from scroll_harvester.models import CompletionDescriptor, LayoutMode


@dataclass(frozen=True)
class CollectionStats:
    steps_taken: int
    max_steps: int
    max_no_progress_retries: int
    no_progress_streak: int
    layout: LayoutMode
    insertions: tuple[int, ...] = ()
    transient_failures: int = 0
    fallback_actions: int = 0
    load_more_clicks: int = 0


@dataclass(frozen=True)
class CollectionResult:
    identifiers: tuple[str, ...]
    completion: CompletionDescriptor
    stats: CollectionStats

    def as_dict(self) -> dict[str, Any]:
        layout = self.stats.layout
        return {
            "identifiers": list(self.identifiers),
            "completion": {
                "terminal_state": self.completion.terminal_state.value,
                "collected": self.completion.collected,
                "expected": self.completion.expected,
                "completion_ratio": self.completion.completion_ratio,
            },
            "stats": {
                "steps_taken": self.stats.steps_taken,
                "max_steps": self.stats.max_steps,
                "max_no_progress_retries": self.stats.max_no_progress_retries,
                "no_progress_streak": self.stats.no_progress_streak,
                "layout": {
                    "kind": layout.kind.value,
                    "expected_total": layout.expected_total,
                    "framework": layout.framework,
                },
                "insertions": list(self.stats.insertions),
                "transient_failures": self.stats.transient_failures,
                "fallback_actions": self.stats.fallback_actions,
                "load_more_clicks": self.stats.load_more_clicks,
            },
        }


class Collector(Protocol):
    def collect(self, page: Any) -> CollectionResult:
        """Collect every reachable identifier from a loaded results page."""
