"""Easing and randomized timing helpers for viewport motion."""

from __future__ import annotations

import random

PIECE_JITTER_RATIO = 0.2
FRAME_MS = 16


def ease_out_cubic(progress: float) -> float:
    """Decelerating curve `1 - (1 - t)^3`, clamped to [0, 1]."""
    t = min(1.0, max(0.0, progress))
    return 1.0 - (1.0 - t) ** 3


def eased_deltas(delta: int, duration_ms: int, frame_ms: int = FRAME_MS) -> list[int]:
    """Cumulative offsets (relative to the start) for an eased move of `delta` px."""
    frames = max(1, duration_ms // frame_ms) if duration_ms > 0 else 1
    return [round(delta * ease_out_cubic(frame / frames)) for frame in range(1, frames + 1)]


def uniform_ms(
    low_ms: int,
    high_ms: int,
    *,
    rng: random.Random | None = None,
) -> int:
    """Return a whole-millisecond duration drawn uniformly from [low, high]."""
    if low_ms < 0 or high_ms < low_ms:
        raise ValueError(f"Invalid millisecond range {low_ms}..{high_ms}.")
    chooser = rng if rng is not None else random
    return chooser.randint(low_ms, high_ms)


def jittered_pieces(
    total: int,
    count: int,
    jitter_ratio: float = PIECE_JITTER_RATIO,
    *,
    rng: random.Random | None = None,
) -> list[int]:
    """Split `total` px into `count` pieces, each varied by +/- jitter_ratio of the even share."""
    if count <= 0:
        raise ValueError("count must be > 0.")
    if jitter_ratio < 0 or jitter_ratio > 1:
        raise ValueError("jitter_ratio must be between 0 and 1.")
    if total <= 0:
        return []

    chooser = rng if rng is not None else random
    share = total / count
    pieces = []
    for _ in range(count):
        factor = chooser.uniform(1.0 - jitter_ratio, 1.0 + jitter_ratio)
        pieces.append(max(1, round(share * factor)))
    return pieces


def ms_to_seconds(value_ms: int) -> float:
    return value_ms / 1000.0
