"""Viewport motion contracts."""

from .model import (
    MotionOutcome,
    MotionPlan,
    PlannedMotion,
    ScrollMetrics,
    ViewportMotionModel,
    animate_scroll,
    read_scroll_metrics,
    scroll_to_top,
)
from .timing import ease_out_cubic, eased_deltas, jittered_pieces

__all__ = [
    "MotionOutcome",
    "MotionPlan",
    "PlannedMotion",
    "ScrollMetrics",
    "ViewportMotionModel",
    "animate_scroll",
    "ease_out_cubic",
    "eased_deltas",
    "jittered_pieces",
    "read_scroll_metrics",
    "scroll_to_top",
]
