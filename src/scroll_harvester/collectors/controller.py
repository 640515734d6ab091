"""Convergence controller: harvest, deduplicate, decide, move, repeat."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import partial
import math
import random
import time
from typing import Any, Protocol

from scroll_harvester.browser.policy import apply_proposed_action, click_load_more
from scroll_harvester.collectors.accumulator import DeduplicatingAccumulator
from scroll_harvester.collectors.base import CollectionResult, CollectionStats
from scroll_harvester.collectors.fallback import ActionProposer, capture_snapshot
from scroll_harvester.config import CollectionConfig, RuntimeConfig, validate_runtime_config
from scroll_harvester.detect.layout import LayoutModeDetector
from scroll_harvester.diagnostics.events import SESSION_FINISHED, SESSION_STARTED, STEP, EventSink
from scroll_harvester.extract.harvester import VisibleItemHarvester
from scroll_harvester.logging import get_logger
from scroll_harvester.models import (
    CONVENTIONAL_LAYOUT,
    CompletionDescriptor,
    LayoutMode,
    ProposedAction,
    TerminalState,
)
from scroll_harvester.motion.model import MotionOutcome, ViewportMotionModel, scroll_to_top
from scroll_harvester.motion.timing import ms_to_seconds

logger = get_logger(__name__)

SleepFn = Callable[[float], None]
LoadMoreClicker = Callable[[Any], object]
ActionApplier = Callable[[Any, ProposedAction], bool]


class LayoutDetector(Protocol):
    def detect(self, page: Any) -> LayoutMode:
        """Classify the page's result list."""


class ItemHarvester(Protocol):
    def harvest(self, page: Any) -> list[str]:
        """Return identifiers of currently rendered items."""


class MotionModel(Protocol):
    def advance(self, page: Any, *, max_travel: int | None = None) -> MotionOutcome:
        """Perform one forward viewport action."""


@dataclass(frozen=True)
class StepBudget:
    max_steps: int
    max_no_progress_retries: int
    settle_delay_ms: int


@dataclass
class _SessionState:
    steps_taken: int = 0
    no_progress_streak: int = 0
    transient_failures: int = 0
    fallback_actions: int = 0
    load_more_clicks: int = 0


def plan_budget(layout: LayoutMode, collection: CollectionConfig) -> StepBudget:
    """Step and retry limits for a session on `layout`."""
    if not layout.is_virtualized:
        return StepBudget(
            max_steps=collection.max_steps,
            max_no_progress_retries=collection.max_no_progress_retries,
            settle_delay_ms=collection.settle_delay_ms,
        )

    max_steps = collection.max_steps
    if layout.has_expected_total:
        max_steps = max(
            collection.virtualized_step_floor,
            math.ceil(layout.expected_total / collection.items_per_step_estimate),
        )
    return StepBudget(
        max_steps=max_steps,
        max_no_progress_retries=collection.virtualized_max_no_progress_retries,
        settle_delay_ms=collection.virtualized_settle_delay_ms,
    )


class ConvergenceController:
    """Drive one page to a terminal state; retries and stop rules live only here."""

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        *,
        detector: LayoutDetector | None = None,
        harvester: ItemHarvester | None = None,
        motion: MotionModel | None = None,
        sleep: SleepFn = time.sleep,
        rng: random.Random | None = None,
        proposer: ActionProposer | None = None,
        action_applier: ActionApplier | None = None,
        load_more_clicker: LoadMoreClicker | None = None,
        event_logger: EventSink | None = None,
        run_id: str | None = None,
    ) -> None:
        self._config = validate_runtime_config(config or RuntimeConfig())
        selectors = self._config.selectors
        self._detector = detector or LayoutModeDetector(tab_label_selectors=selectors.tab_labels)
        self._harvester = harvester or VisibleItemHarvester(selectors.items, selectors.link_patterns)
        self._motion = motion or ViewportMotionModel(self._config.motion, rng=rng, sleep=sleep)
        self._sleep = sleep
        self._proposer = proposer
        self._action_applier = action_applier or partial(
            apply_proposed_action, timeout_ms=self._config.browser.action_timeout_ms
        )
        self._load_more_clicker = load_more_clicker or partial(
            click_load_more,
            selectors=selectors.load_more,
            timeout_ms=self._config.browser.action_timeout_ms,
        )
        self._event_logger = event_logger
        self._run_id = run_id

    @property
    def config(self) -> RuntimeConfig:
        return self._config

    def collect(self, page: Any) -> CollectionResult:
        collection = self._config.collection
        run_id = self._run_id or _new_run_id()
        layout = self._detect(page)
        budget = plan_budget(layout, collection)
        if not collection.enabled:
            budget = StepBudget(max_steps=1, max_no_progress_retries=1, settle_delay_ms=0)

        accumulator = DeduplicatingAccumulator()
        state = _SessionState()
        self._emit(
            SESSION_STARTED,
            run_id,
            {
                "url": _page_url(page),
                "layout": layout.kind.value,
                "expected_total": layout.expected_total,
                "framework": layout.framework,
                "max_steps": budget.max_steps,
                "max_no_progress_retries": budget.max_no_progress_retries,
            },
        )
        logger.info(
            "Collecting %s: layout=%s max_steps=%s max_no_progress_retries=%s",
            _page_url(page),
            layout.kind.value,
            budget.max_steps,
            budget.max_no_progress_retries,
        )

        if collection.enabled:
            terminal = self._run_loop(page, layout, budget, accumulator, state, run_id)
        else:
            new_count = self._harvest(page, accumulator, state)
            state.steps_taken = 1
            state.no_progress_streak = 0 if new_count else 1
            terminal = TerminalState.EXHAUSTED

        try:
            scroll_to_top(page)
        except Exception as exc:
            logger.debug("Could not restore scroll position: %s", exc)

        completion = CompletionDescriptor(
            terminal_state=terminal,
            collected=accumulator.size(),
            expected=layout.expected_total or None,
        )
        result = CollectionResult(
            identifiers=accumulator.snapshot(),
            completion=completion,
            stats=CollectionStats(
                steps_taken=state.steps_taken,
                max_steps=budget.max_steps,
                max_no_progress_retries=budget.max_no_progress_retries,
                no_progress_streak=state.no_progress_streak,
                layout=layout,
                insertions=accumulator.history,
                transient_failures=state.transient_failures,
                fallback_actions=state.fallback_actions,
                load_more_clicks=state.load_more_clicks,
            ),
        )
        self._emit(
            SESSION_FINISHED,
            run_id,
            {
                "terminal_state": terminal.value,
                "collected": completion.collected,
                "expected": completion.expected,
                "steps_taken": state.steps_taken,
                "transient_failures": state.transient_failures,
            },
        )
        logger.info(
            "Finished %s: %s with %s identifiers after %s steps",
            _page_url(page),
            terminal.value,
            completion.collected,
            state.steps_taken,
        )
        return result

    def _run_loop(
        self,
        page: Any,
        layout: LayoutMode,
        budget: StepBudget,
        accumulator: DeduplicatingAccumulator,
        state: _SessionState,
        run_id: str,
    ) -> TerminalState:
        collection = self._config.collection
        early_stop_at = (
            layout.expected_total * collection.early_stop_fraction if layout.has_expected_total else None
        )
        max_travel = self._config.browser.viewport_height if layout.is_virtualized else None

        while (
            state.steps_taken < budget.max_steps
            and state.no_progress_streak < budget.max_no_progress_retries
        ):
            previous_streak = state.no_progress_streak
            new_count = self._harvest(page, accumulator, state)
            state.no_progress_streak = 0 if new_count > 0 else previous_streak + 1

            if early_stop_at is not None and accumulator.size() >= early_stop_at:
                self._emit_step(
                    run_id, state.steps_taken + 1, state, new_count, accumulator, near_bottom=False
                )
                logger.info(
                    "Early stop: %s of %s expected identifiers collected",
                    accumulator.size(),
                    layout.expected_total,
                )
                return TerminalState.EARLY_STOP

            if new_count == 0 and self._proposer is not None:
                self._apply_fallback(page, accumulator, state)

            near_bottom = False
            try:
                outcome = self._motion.advance(page, max_travel=max_travel)
            except Exception as exc:
                state.transient_failures += 1
                state.no_progress_streak = previous_streak + 1
                logger.warning("Motion failed at step %s: %s", state.steps_taken, exc)
            else:
                near_bottom = outcome.near_bottom
                if near_bottom and collection.detect_load_more and self._load_more_clicker(page):
                    state.load_more_clicks += 1

            if budget.settle_delay_ms > 0:
                self._sleep(ms_to_seconds(budget.settle_delay_ms))
            state.steps_taken += 1
            self._emit_step(run_id, state.steps_taken, state, new_count, accumulator, near_bottom=near_bottom)
            logger.debug(
                "Step %s: +%s new (total=%s, streak=%s, near_bottom=%s)",
                state.steps_taken,
                new_count,
                accumulator.size(),
                state.no_progress_streak,
                near_bottom,
            )

        if state.no_progress_streak >= budget.max_no_progress_retries:
            return TerminalState.NO_PROGRESS
        return TerminalState.EXHAUSTED

    def _detect(self, page: Any) -> LayoutMode:
        if not self._config.collection.virtualization_detection:
            return CONVENTIONAL_LAYOUT
        return self._detector.detect(page)

    def _harvest(self, page: Any, accumulator: DeduplicatingAccumulator, state: _SessionState) -> int:
        try:
            identifiers = self._harvester.harvest(page)
        except Exception as exc:
            state.transient_failures += 1
            logger.warning("Harvest failed at step %s: %s", state.steps_taken, exc)
            identifiers = []
        return accumulator.add(identifiers)

    def _apply_fallback(
        self,
        page: Any,
        accumulator: DeduplicatingAccumulator,
        state: _SessionState,
    ) -> None:
        assert self._proposer is not None
        try:
            snapshot = capture_snapshot(
                page,
                step=state.steps_taken,
                collected=accumulator.size(),
                excerpt_chars=self._config.fallback.excerpt_chars,
            )
            action = self._proposer.propose_action(snapshot)
            if action is None:
                return
            if self._action_applier(page, action):
                state.fallback_actions += 1
                logger.info("Applied fallback %s action at step %s", action.kind.value, state.steps_taken)
        except Exception as exc:
            logger.warning("Fallback proposal failed at step %s: %s", state.steps_taken, exc)

    def _emit_step(
        self,
        run_id: str,
        step: int,
        state: _SessionState,
        new_count: int,
        accumulator: DeduplicatingAccumulator,
        *,
        near_bottom: bool,
    ) -> None:
        self._emit(
            STEP,
            run_id,
            {
                "step": step,
                "new_count": new_count,
                "collected": accumulator.size(),
                "no_progress_streak": state.no_progress_streak,
                "near_bottom": near_bottom,
            },
        )

    def _emit(self, event_type: str, run_id: str, payload: dict[str, Any]) -> None:
        if self._event_logger is None:
            return
        try:
            self._event_logger.append(event_type, run_id=run_id, payload=payload)
        except Exception as exc:
            logger.warning("Could not record %s event: %s", event_type, exc)


def _page_url(page: Any) -> str:
    return str(getattr(page, "url", "") or "")


def _new_run_id() -> str:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
    return f"collect-{stamp}"
