"""One-shot classification of a result list as conventional or virtualized."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import re
from typing import Any, Protocol

from scroll_harvester.errors import ExtractError
from scroll_harvester.extract.selectors import DEFAULT_TAB_LABEL_SELECTORS
from scroll_harvester.logging import get_logger
from scroll_harvester.models import CONVENTIONAL_LAYOUT, LayoutKind, LayoutMode

logger = get_logger(__name__)

MARKER_GROUPS: dict[str, tuple[str, ...]] = {
    "scroller": ("virtual-scroller", ".virtual-scroller", "[class*='virtual-scroller']"),
    "total_padding": (".total-padding", "[class*='total-padding']"),
    "scrollable_content": (".scrollable-content", "[class*='scrollable-content']"),
}
MARKER_FRAMEWORK = "ngx-virtual-scroller"
NAMED_COMPONENTS: tuple[tuple[str, str], ...] = (
    ("cdk-virtual-scroll-viewport", "angular-cdk"),
    ("recycle-scroller", "vue-virtual-scroller"),
    (".vue-recycle-scroller", "vue-virtual-scroller"),
    ("[data-virtuoso-scroller]", "react-virtuoso"),
    (".ReactVirtualized__Grid", "react-virtualized"),
)
MIN_CO_OCCURRING_MARKERS = 2

_COUNT_LABEL_RE = re.compile(r"^(?P<label>[^\W\d_][\w&'. -]*?)\s*\(\s*(?P<count>\d[\d,]*)\s*\)$")
_WHITESPACE_RE = re.compile(r"\s+")

LAYOUT_PROBE_SCRIPT = """({ groups, components, tabSelectors }) => {
  const present = (selector) => {
    try {
      return document.querySelector(selector) !== null;
    } catch (error) {
      return false;
    }
  };
  const markers = {};
  for (const [name, selectors] of Object.entries(groups)) {
    markers[name] = selectors.some(present);
  }
  const labels = [];
  for (const selector of tabSelectors) {
    let nodes = [];
    try {
      nodes = Array.from(document.querySelectorAll(selector));
    } catch (error) {
      continue;
    }
    for (const node of nodes) {
      const classes = node.classList;
      labels.push({
        text: (node.textContent || "").trim(),
        selected: node.getAttribute("aria-selected") === "true"
          || classes.contains("active")
          || classes.contains("selected")
          || classes.contains("mat-tab-label-active"),
      });
    }
  }
  return { markers, components: components.filter(present), labels };
}"""


class EvaluatingPage(Protocol):
    def evaluate(self, expression: str, arg: Any = None) -> Any:
        """Run JavaScript expression on page."""


class LayoutModeDetector:
    """Probe the DOM once; any probe failure degrades to a conventional layout."""

    def __init__(self, *, tab_label_selectors: Sequence[str] = DEFAULT_TAB_LABEL_SELECTORS) -> None:
        self._tab_label_selectors = tuple(tab_label_selectors)

    def detect(self, page: EvaluatingPage) -> LayoutMode:
        try:
            probe = page.evaluate(
                LAYOUT_PROBE_SCRIPT,
                {
                    "groups": {name: list(selectors) for name, selectors in MARKER_GROUPS.items()},
                    "components": [selector for selector, _ in NAMED_COMPONENTS],
                    "tabSelectors": list(self._tab_label_selectors),
                },
            )
            layout = classify_layout(probe)
        except Exception as exc:
            logger.warning("Layout detection failed; assuming conventional list: %s", exc)
            return CONVENTIONAL_LAYOUT

        logger.info(
            "Detected %s layout (expected_total=%s, framework=%s)",
            layout.kind.value,
            layout.expected_total,
            layout.framework,
        )
        return layout


def classify_layout(probe: object) -> LayoutMode:
    """Turn a layout probe payload into a LayoutMode."""
    if not isinstance(probe, Mapping):
        raise ExtractError(f"Layout probe returned {type(probe).__name__}, expected object.")

    markers = probe.get("markers") or {}
    components = probe.get("components") or []
    labels = probe.get("labels") or []
    if not isinstance(markers, Mapping) or not isinstance(components, list) or not isinstance(labels, list):
        raise ExtractError(f"Layout probe returned malformed payload: {probe!r}")

    expected_total = parse_expected_total(labels)
    framework = _component_framework(components)
    marker_hits = sum(1 for name in MARKER_GROUPS if markers.get(name))
    if framework is None and marker_hits >= MIN_CO_OCCURRING_MARKERS:
        framework = MARKER_FRAMEWORK

    if framework is None:
        return LayoutMode(kind=LayoutKind.CONVENTIONAL, expected_total=expected_total)
    return LayoutMode(kind=LayoutKind.VIRTUALIZED, expected_total=expected_total, framework=framework)


def parse_expected_total(labels: Sequence[object]) -> int:
    """Read `<word>(<digits>)` counts from tab labels; the selected tab wins, 0 when absent."""
    first_count: int | None = None
    for label in labels:
        if isinstance(label, Mapping):
            text, selected = label.get("text"), bool(label.get("selected"))
        else:
            text, selected = label, False
        count = parse_count_label(text)
        if count is None:
            continue
        if selected:
            return count
        if first_count is None:
            first_count = count
    return first_count or 0


def parse_count_label(text: object) -> int | None:
    if not isinstance(text, str):
        return None
    match = _COUNT_LABEL_RE.fullmatch(_WHITESPACE_RE.sub(" ", text).strip())
    if match is None:
        return None
    return int(match.group("count").replace(",", ""))


def _component_framework(components: Sequence[object]) -> str | None:
    frameworks = dict(NAMED_COMPONENTS)
    for selector in components:
        if isinstance(selector, str) and selector in frameworks:
            return frameworks[selector]
    return None
