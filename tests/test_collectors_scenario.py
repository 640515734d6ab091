"""End-to-end collection over a simulated virtualized result list."""

from __future__ import annotations

import random
from typing import Any

import pytest

from scroll_harvester.collectors.controller import ConvergenceController
from scroll_harvester.config import BrowserConfig, CollectionConfig, RuntimeConfig
from scroll_harvester.detect.layout import LAYOUT_PROBE_SCRIPT
from scroll_harvester.extract.harvester import HARVEST_SCRIPT
from scroll_harvester.models import LayoutKind, TerminalState
from scroll_harvester.motion.model import ANIMATE_SCROLL_SCRIPT, SCROLL_METRICS_SCRIPT, SCROLL_TO_TOP_SCRIPT
from scroll_harvester.testing import SleepRecorder

ORIGIN = "https://conf.example.org"


class FakeVirtualListPage:
    """A recycled list: only rows near the viewport exist in the DOM at any time."""

    def __init__(
        self,
        *,
        total: int = 50,
        row_height: int = 100,
        viewport_height: int = 800,
        rendered_rows: int = 20,
    ) -> None:
        self.total = total
        self.row_height = row_height
        self.viewport_height = viewport_height
        self.rendered_rows = rendered_rows
        self.offset = 0
        self.max_offset = total * row_height - viewport_height
        self.rendered_windows: list[tuple[int, int]] = []

    @property
    def url(self) -> str:
        return f"{ORIGIN}/search?q=robots"

    def query_selector(self, selector: str) -> None:
        return None

    def evaluate(self, expression: str, arg: Any = None) -> Any:
        if expression == LAYOUT_PROBE_SCRIPT:
            return {
                "markers": {"scroller": True, "total_padding": True, "scrollable_content": False},
                "components": [],
                "labels": [
                    {"text": "Content (50)", "selected": True},
                    {"text": "People (12)", "selected": False},
                ],
            }
        if expression == HARVEST_SCRIPT:
            if arg["selector"] != "content-card":
                return []
            start, end = self._window()
            self.rendered_windows.append((start, end))
            return [f"/content/{index}" for index in range(start, end)]
        if expression == SCROLL_METRICS_SCRIPT:
            return {
                "offset": self.offset,
                "max_offset": self.max_offset,
                "viewport_height": self.viewport_height,
            }
        if expression == ANIMATE_SCROLL_SCRIPT:
            self.offset = max(0, min(self.max_offset, self.offset + arg["deltas"][-1]))
            return self.offset
        if expression == SCROLL_TO_TOP_SCRIPT:
            self.offset = 0
            return None
        raise AssertionError(f"unexpected script: {expression[:40]}")

    def _window(self) -> tuple[int, int]:
        start = self.offset // self.row_height
        return start, min(self.total, start + self.rendered_rows)


@pytest.mark.parametrize("seed", [1, 7, 42, 2024])
def test_virtualized_list_converges_with_early_stop(seed: int) -> None:
    page = FakeVirtualListPage()
    sleeps = SleepRecorder()
    config = RuntimeConfig(
        browser=BrowserConfig(viewport_height=800),
        collection=CollectionConfig(
            max_steps=15,
            virtualized_max_no_progress_retries=4,
            virtualized_step_floor=15,
            early_stop_fraction=0.8,
        ),
    )
    controller = ConvergenceController(config, rng=random.Random(seed), sleep=sleeps, run_id="scenario")

    result = controller.collect(page)

    assert result.stats.layout.kind is LayoutKind.VIRTUALIZED
    assert result.stats.layout.expected_total == 50
    assert result.stats.max_steps == 15
    assert result.completion.terminal_state is TerminalState.EARLY_STOP
    assert 40 <= result.completion.collected <= 50
    assert result.stats.steps_taken <= 15
    assert len(set(result.identifiers)) == len(result.identifiers)
    assert set(result.identifiers) <= {f"{ORIGIN}/content/{index}" for index in range(50)}
    assert result.identifiers[0] == f"{ORIGIN}/content/0"
    assert sleeps.calls.count(3.0) == result.stats.steps_taken
    assert page.offset == 0
