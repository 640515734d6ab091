"""Layout mode detection."""

from .layout import LayoutModeDetector, classify_layout, parse_count_label, parse_expected_total

__all__ = [
    "LayoutModeDetector",
    "classify_layout",
    "parse_count_label",
    "parse_expected_total",
]
