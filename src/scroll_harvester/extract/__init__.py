"""Visible-item extraction: selector packs, harvesting and identifier normalization."""

from .harvester import VisibleItemHarvester
from .normalize import normalize_identifier
from .selectors import (
    DEFAULT_ITEM_SELECTORS,
    DEFAULT_LINK_PATTERNS,
    DEFAULT_LOAD_MORE_SELECTORS,
    DEFAULT_TAB_LABEL_SELECTORS,
    SelectorPackResolution,
    resolve_selector_pack,
)

__all__ = [
    "DEFAULT_ITEM_SELECTORS",
    "DEFAULT_LINK_PATTERNS",
    "DEFAULT_LOAD_MORE_SELECTORS",
    "DEFAULT_TAB_LABEL_SELECTORS",
    "SelectorPackResolution",
    "VisibleItemHarvester",
    "normalize_identifier",
    "resolve_selector_pack",
]
