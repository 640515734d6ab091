"""Candidate selector defaults and `[selectors]` override resolution."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

SelectorPack = dict[str, tuple[str, ...]]

ITEM_CONTAINER_KEY = "items"
LINK_PATTERN_KEY = "link_patterns"
LOAD_MORE_KEY = "load_more"
TAB_LABEL_KEY = "tab_labels"

# Most specific first; the harvester uses the first one that matches anything.
DEFAULT_ITEM_SELECTORS = (
    "content-card.search-item",
    "content-card",
    ".search-result-item",
    ".result-item",
    ".paper-item",
    "article",
)
DEFAULT_LINK_PATTERNS = ("/content/", "/program/")
DEFAULT_LOAD_MORE_SELECTORS = (
    'button:has-text("Load more")',
    'button:has-text("Show more")',
    "button.load-more",
    "a.load-more",
)
DEFAULT_TAB_LABEL_SELECTORS = (
    '[role="tab"]',
    ".mat-tab-label",
    ".nav-tabs a",
    ".tab",
)

DEFAULT_SELECTOR_PACK: dict[str, tuple[str, ...]] = {
    ITEM_CONTAINER_KEY: DEFAULT_ITEM_SELECTORS,
    LINK_PATTERN_KEY: DEFAULT_LINK_PATTERNS,
    LOAD_MORE_KEY: DEFAULT_LOAD_MORE_SELECTORS,
    TAB_LABEL_KEY: DEFAULT_TAB_LABEL_SELECTORS,
}


@dataclass(frozen=True)
class SelectorPackResolution:
    selectors: SelectorPack
    warnings: tuple[str, ...] = ()


def default_selector_pack() -> SelectorPack:
    """Return a mutable copy of built-in selector defaults."""
    return dict(DEFAULT_SELECTOR_PACK)


def resolve_selector_pack(overrides: Mapping[str, Any] | None = None) -> SelectorPackResolution:
    """Apply overrides on top of defaults; invalid entries keep the default and warn."""
    selectors = default_selector_pack()
    warnings: list[str] = []
    for key, value in sorted((overrides or {}).items()):
        if key not in DEFAULT_SELECTOR_PACK:
            warnings.append(
                f"Unknown selector key '{key}'. Allowed keys: {', '.join(sorted(DEFAULT_SELECTOR_PACK))}."
            )
            continue
        normalized = normalize_selector_list(value)
        if normalized is None:
            warnings.append(
                f"Selector override for '{key}' must be a non-empty string or list of strings; keeping defaults."
            )
            continue
        selectors[key] = normalized
    return SelectorPackResolution(selectors=selectors, warnings=tuple(warnings))


def normalize_selector_list(value: Any) -> tuple[str, ...] | None:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list | tuple) or not value:
        return None

    normalized: list[str] = []
    for entry in value:
        if not isinstance(entry, str) or not entry.strip():
            return None
        trimmed = entry.strip()
        if trimmed not in normalized:
            normalized.append(trimmed)
    return tuple(normalized)
