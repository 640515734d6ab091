"""Visible-item harvesting with ordered selector fallback."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from scroll_harvester.errors import ExtractError
from scroll_harvester.extract.normalize import normalize_identifier
from scroll_harvester.extract.selectors import DEFAULT_ITEM_SELECTORS, DEFAULT_LINK_PATTERNS
from scroll_harvester.logging import get_logger

logger = get_logger(__name__)

# One entry per matched element: the first qualifying href, or null when the element has none.
HARVEST_SCRIPT = """({ selector, patterns }) => {
  let nodes;
  try {
    nodes = Array.from(document.querySelectorAll(selector));
  } catch (error) {
    return null;
  }
  return nodes.map((node) => {
    const anchors = node.matches("a[href]")
      ? [node]
      : Array.from(node.querySelectorAll("a[href]"));
    const match = anchors.find((anchor) => {
      const href = anchor.getAttribute("href") || "";
      return patterns.some((pattern) => href.includes(pattern));
    });
    return match ? match.getAttribute("href") : null;
  });
}"""


class HarvestablePage(Protocol):
    @property
    def url(self) -> str:
        """Current page URL."""

    def evaluate(self, expression: str, arg: Any = None) -> Any:
        """Run JavaScript expression on page."""


class VisibleItemHarvester:
    """Read identifiers of currently rendered items without touching the page."""

    def __init__(
        self,
        selectors: Sequence[str] = DEFAULT_ITEM_SELECTORS,
        link_patterns: Sequence[str] = DEFAULT_LINK_PATTERNS,
    ) -> None:
        self._selectors = tuple(selectors)
        self._link_patterns = tuple(link_patterns)
        if not self._selectors:
            raise ValueError("At least one item selector is required.")
        if not self._link_patterns:
            raise ValueError("At least one link pattern is required.")

    @property
    def selectors(self) -> tuple[str, ...]:
        return self._selectors

    def harvest(self, page: HarvestablePage) -> list[str]:
        """Identifiers from the first selector matching any element, in DOM order."""
        base_url = page.url
        for selector in self._selectors:
            hrefs = page.evaluate(
                HARVEST_SCRIPT,
                {"selector": selector, "patterns": list(self._link_patterns)},
            )
            if hrefs is None:
                logger.debug("Skipping unparseable item selector %r", selector)
                continue
            if not isinstance(hrefs, list):
                raise ExtractError(
                    f"Harvest probe for {selector!r} returned {type(hrefs).__name__}, expected list."
                )
            if not hrefs:
                continue

            identifiers = []
            for href in hrefs:
                identifier = normalize_identifier(base_url, href)
                if identifier is not None:
                    identifiers.append(identifier)
            logger.debug(
                "Selector %r matched %s elements, %s identifiers",
                selector,
                len(hrefs),
                len(identifiers),
            )
            return identifiers
        return []
