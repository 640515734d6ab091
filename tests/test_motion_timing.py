"""Easing curve and randomized timing helpers."""

from __future__ import annotations

import math
import random

import pytest

from scroll_harvester.motion.timing import (
    ease_out_cubic,
    eased_deltas,
    jittered_pieces,
    ms_to_seconds,
    uniform_ms,
)


def test_ease_out_cubic_endpoints_and_midpoint() -> None:
    assert ease_out_cubic(0.0) == 0.0
    assert ease_out_cubic(1.0) == 1.0
    assert ease_out_cubic(0.5) == pytest.approx(0.875)


def test_ease_out_cubic_clamps_progress() -> None:
    assert ease_out_cubic(-0.5) == 0.0
    assert ease_out_cubic(2.0) == 1.0


def test_eased_deltas_decelerate_and_land_on_target() -> None:
    offsets = eased_deltas(300, 160)

    assert len(offsets) == 10
    assert offsets[-1] == 300
    steps = [later - earlier for earlier, later in zip([0, *offsets], offsets)]
    assert steps == sorted(steps, reverse=True)


def test_eased_deltas_handle_backward_and_instant_moves() -> None:
    assert eased_deltas(-80, 64)[-1] == -80
    assert eased_deltas(500, 0) == [500]


def test_uniform_ms_stays_in_range() -> None:
    rng = random.Random(3)
    draws = [uniform_ms(400, 1800, rng=rng) for _ in range(200)]
    assert min(draws) >= 400
    assert max(draws) <= 1800


def test_uniform_ms_rejects_invalid_range() -> None:
    with pytest.raises(ValueError, match="Invalid millisecond range"):
        uniform_ms(900, 300)


def test_jittered_pieces_vary_within_twenty_percent() -> None:
    rng = random.Random(11)
    pieces = jittered_pieces(1200, 4, rng=rng)

    assert len(pieces) == 4
    for piece in pieces:
        assert math.floor(300 * 0.8) <= piece <= math.ceil(300 * 1.2)


def test_jittered_pieces_never_emit_zero_and_skip_empty_travel() -> None:
    assert all(piece >= 1 for piece in jittered_pieces(3, 6, rng=random.Random(5)))
    assert jittered_pieces(0, 3) == []


def test_jittered_pieces_reject_bad_arguments() -> None:
    with pytest.raises(ValueError, match="count"):
        jittered_pieces(100, 0)
    with pytest.raises(ValueError, match="jitter_ratio"):
        jittered_pieces(100, 2, jitter_ratio=1.5)


def test_ms_to_seconds() -> None:
    assert ms_to_seconds(1800) == 1.8
