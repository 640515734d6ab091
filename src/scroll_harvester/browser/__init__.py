"""Browser contracts."""

from .policy import apply_proposed_action, click_first_visible, click_load_more
from .session import BrowserPage, BrowserSessionOptions, PlaywrightBrowserSession

__all__ = [
    "BrowserPage",
    "BrowserSessionOptions",
    "PlaywrightBrowserSession",
    "apply_proposed_action",
    "click_first_visible",
    "click_load_more",
]
