"""Page interaction policies: load-more clicking and fallback action application."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from scroll_harvester.extract.selectors import DEFAULT_LOAD_MORE_SELECTORS
from scroll_harvester.logging import get_logger
from scroll_harvester.models import ActionKind, ProposedAction

logger = get_logger(__name__)

DEFAULT_CLICK_TIMEOUT_MS = 1_000
SCROLL_BY_SCRIPT = "(delta) => { window.scrollBy(0, delta); return Math.round(window.scrollY); }"


class ClickableElement(Protocol):
    def click(self, timeout: int | None = None) -> Any:
        """Click element."""

    def is_visible(self) -> bool:
        """Return true when element is visible."""


class InteractivePage(Protocol):
    def query_selector(self, selector: str) -> ClickableElement | None:
        """Query for single element."""

    def evaluate(self, expression: str, arg: Any = None) -> Any:
        """Run JavaScript expression on page."""


def click_load_more(
    page: InteractivePage,
    selectors: Sequence[str] = DEFAULT_LOAD_MORE_SELECTORS,
    *,
    timeout_ms: int = DEFAULT_CLICK_TIMEOUT_MS,
) -> str | None:
    """Click the first visible load-more control; returns the selector used, or None."""
    for selector in selectors:
        if click_first_visible(page, selector, timeout_ms=timeout_ms):
            logger.debug("Clicked load-more control %r", selector)
            return selector
    return None


def apply_proposed_action(
    page: InteractivePage,
    action: ProposedAction,
    *,
    timeout_ms: int = DEFAULT_CLICK_TIMEOUT_MS,
) -> bool:
    """Apply one fallback action; False when it could not be carried out."""
    if action.kind is ActionKind.SCROLL:
        try:
            page.evaluate(SCROLL_BY_SCRIPT, action.delta)
        except Exception as exc:
            logger.warning("Fallback scroll by %s px failed: %s", action.delta, exc)
            return False
        return True

    if action.selector is None or not click_first_visible(page, action.selector, timeout_ms=timeout_ms):
        logger.warning("Fallback click on %r had no visible target", action.selector)
        return False
    return True


def click_first_visible(page: InteractivePage, selector: str, *, timeout_ms: int) -> bool:
    try:
        element = page.query_selector(selector)
    except Exception:
        return False
    if element is None or not _is_visible(element):
        return False
    return _safe_click(element, timeout_ms)


def _is_visible(element: ClickableElement) -> bool:
    try:
        return bool(element.is_visible())
    except Exception:
        return False


def _safe_click(element: ClickableElement, timeout_ms: int) -> bool:
    try:
        element.click(timeout=timeout_ms)
    except Exception:
        return False
    return True
