"""Human-like viewport motion: planned eased pieces, think-time pauses and backscrolls."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import random
import time
from typing import Any, Protocol

from scroll_harvester.config import MotionConfig, validate_motion_config
from scroll_harvester.errors import CollectError
from scroll_harvester.models import MotionStep
from scroll_harvester.motion.timing import (
    FRAME_MS,
    eased_deltas,
    jittered_pieces,
    ms_to_seconds,
    uniform_ms,
)

SleepFn = Callable[[float], None]

BACKSCROLL_REVERSE_PX = (30, 110)
BACKSCROLL_CORRECTION_PX = (50, 150)

SCROLL_METRICS_SCRIPT = """() => {
  const root = document.scrollingElement || document.documentElement;
  const viewport = window.innerHeight || root.clientHeight || 0;
  return {
    offset: Math.round(window.scrollY || root.scrollTop || 0),
    max_offset: Math.max(0, Math.round((root.scrollHeight || 0) - viewport)),
    viewport_height: Math.round(viewport),
  };
}"""

ANIMATE_SCROLL_SCRIPT = """({ deltas, frame_ms }) => new Promise((resolve) => {
  const start = window.scrollY;
  let index = 0;
  const tick = () => {
    window.scrollTo(0, start + deltas[index]);
    index += 1;
    if (index < deltas.length) {
      setTimeout(tick, frame_ms);
    } else {
      resolve(Math.round(window.scrollY));
    }
  };
  tick();
})"""

SCROLL_TO_TOP_SCRIPT = "() => window.scrollTo(0, 0)"


class ScrollablePage(Protocol):
    def evaluate(self, expression: str, arg: Any = None) -> Any:
        """Run JavaScript expression on page."""


@dataclass(frozen=True)
class ScrollMetrics:
    offset: int
    max_offset: int
    viewport_height: int = 0


@dataclass(frozen=True)
class PlannedMotion:
    step: MotionStep
    pause_after_ms: int = 0


@dataclass(frozen=True)
class MotionPlan:
    moves: tuple[PlannedMotion, ...] = ()
    near_bottom: bool = False

    @property
    def net_delta(self) -> int:
        return sum(move.step.target_delta for move in self.moves)


@dataclass(frozen=True)
class MotionOutcome:
    steps: tuple[MotionStep, ...] = ()
    near_bottom: bool = False
    viewport_height: int = 0

    @property
    def backscrolls(self) -> int:
        return sum(1 for step in self.steps if step.is_backward)


class ViewportMotionModel:
    """Advance the viewport one forward action per call, paced like manual scrolling."""

    def __init__(
        self,
        config: MotionConfig | None = None,
        *,
        rng: random.Random | None = None,
        sleep: SleepFn = time.sleep,
    ) -> None:
        self._config = validate_motion_config(config or MotionConfig())
        self._rng = rng if rng is not None else random.Random()
        self._sleep = sleep

    @property
    def config(self) -> MotionConfig:
        return self._config

    def plan(self, metrics: ScrollMetrics, *, max_travel: int | None = None) -> MotionPlan:
        config = self._config
        if metrics.max_offset <= 0 or metrics.offset >= metrics.max_offset * config.near_bottom_ratio:
            return MotionPlan(near_bottom=True)

        remaining = metrics.max_offset - metrics.offset
        if config.human_like:
            fraction = self._rng.uniform(config.travel_fraction_min, config.travel_fraction_max)
            travel = round(remaining * fraction)
        else:
            travel = remaining
        if max_travel is not None and max_travel > 0:
            travel = min(travel, max_travel)
        travel = max(1, travel)

        if not config.human_like:
            return MotionPlan(moves=(PlannedMotion(MotionStep(0, travel, 0)),))

        count = self._rng.randint(config.steps_min, config.steps_max)
        moves: list[PlannedMotion] = []
        for piece in jittered_pieces(travel, count, rng=self._rng):
            moves.append(PlannedMotion(MotionStep(len(moves), piece, self._duration_ms())))
            if self._rng.random() < config.backscroll_chance:
                moves.extend(self._backscroll(len(moves)))
            think_ms = uniform_ms(config.step_delay_min_ms, config.step_delay_max_ms, rng=self._rng)
            moves[-1] = PlannedMotion(moves[-1].step, pause_after_ms=think_ms)
        return MotionPlan(moves=tuple(moves))

    def advance(self, page: ScrollablePage, *, max_travel: int | None = None) -> MotionOutcome:
        metrics = read_scroll_metrics(page)
        plan = self.plan(metrics, max_travel=max_travel)
        if plan.near_bottom:
            return MotionOutcome(near_bottom=True, viewport_height=metrics.viewport_height)

        for move in plan.moves:
            animate_scroll(page, move.step.target_delta, move.step.duration_ms)
            if move.pause_after_ms > 0:
                self._sleep(ms_to_seconds(move.pause_after_ms))
        return MotionOutcome(
            steps=tuple(move.step for move in plan.moves),
            viewport_height=metrics.viewport_height,
        )

    def _duration_ms(self) -> int:
        return uniform_ms(self._config.duration_min_ms, self._config.duration_max_ms, rng=self._rng)

    def _backscroll(self, ordinal: int) -> tuple[PlannedMotion, PlannedMotion]:
        config = self._config
        reverse = self._rng.randint(*BACKSCROLL_REVERSE_PX)
        correction = self._rng.randint(*BACKSCROLL_CORRECTION_PX)
        pause_ms = uniform_ms(config.backscroll_pause_min_ms, config.backscroll_pause_max_ms, rng=self._rng)
        return (
            PlannedMotion(
                MotionStep(ordinal, -reverse, self._duration_ms(), is_backward=True),
                pause_after_ms=pause_ms,
            ),
            PlannedMotion(MotionStep(ordinal + 1, correction, self._duration_ms())),
        )


def read_scroll_metrics(page: ScrollablePage) -> ScrollMetrics:
    payload = page.evaluate(SCROLL_METRICS_SCRIPT)
    if not isinstance(payload, dict):
        raise CollectError(f"Scroll metrics probe returned {type(payload).__name__}, expected object.")
    try:
        return ScrollMetrics(
            offset=int(payload["offset"]),
            max_offset=int(payload["max_offset"]),
            viewport_height=int(payload.get("viewport_height", 0)),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise CollectError(f"Scroll metrics probe returned malformed payload: {payload!r}") from exc


def scroll_to_top(page: ScrollablePage) -> None:
    page.evaluate(SCROLL_TO_TOP_SCRIPT)


def animate_scroll(page: ScrollablePage, delta: int, duration_ms: int) -> Any:
    """Replay an eased move frame by frame; returns the resulting scroll offset."""
    return page.evaluate(
        ANIMATE_SCROLL_SCRIPT,
        {"deltas": eased_deltas(delta, duration_ms), "frame_ms": FRAME_MS},
    )
