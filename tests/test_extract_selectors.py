"""Selector pack defaults and override resolution."""

from __future__ import annotations

from scroll_harvester.extract.selectors import (
    DEFAULT_ITEM_SELECTORS,
    DEFAULT_LINK_PATTERNS,
    default_selector_pack,
    normalize_selector_list,
    resolve_selector_pack,
)


def test_default_item_selectors_are_most_specific_first() -> None:
    assert DEFAULT_ITEM_SELECTORS[0] == "content-card.search-item"
    assert DEFAULT_ITEM_SELECTORS[-1] == "article"
    assert DEFAULT_LINK_PATTERNS == ("/content/", "/program/")


def test_default_selector_pack_is_a_copy() -> None:
    pack = default_selector_pack()
    pack["items"] = ("div",)
    assert default_selector_pack()["items"] == DEFAULT_ITEM_SELECTORS


def test_resolve_selector_pack_applies_valid_overrides() -> None:
    resolution = resolve_selector_pack({"items": ["li.hit", "li.hit", " div.hit "], "link_patterns": "/paper/"})

    assert resolution.selectors["items"] == ("li.hit", "div.hit")
    assert resolution.selectors["link_patterns"] == ("/paper/",)
    assert resolution.warnings == ()


def test_resolve_selector_pack_warns_and_keeps_defaults() -> None:
    resolution = resolve_selector_pack({"cards": ["div"], "items": [], "load_more": ["button", 3]})

    assert resolution.selectors == default_selector_pack()
    assert len(resolution.warnings) == 3
    assert "Unknown selector key 'cards'" in resolution.warnings[0]


def test_normalize_selector_list_rejects_blank_entries() -> None:
    assert normalize_selector_list("article") == ("article",)
    assert normalize_selector_list(["article", "  "]) is None
    assert normalize_selector_list(42) is None
