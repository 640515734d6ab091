"""Playwright browser lifecycle for one collection run."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Any, Protocol

from scroll_harvester.config import RuntimeConfig
from scroll_harvester.errors import BrowserError

CHROMIUM_STEALTH_ARGS = ("--disable-blink-features=AutomationControlled",)
MASK_WEBDRIVER_SCRIPT = (
    "Object.defineProperty(navigator, 'webdriver', { get: () => undefined });"
)


class BrowserPage(Protocol):
    @property
    def url(self) -> str:
        """Current page URL."""

    def goto(self, url: str, **kwargs: Any) -> Any:
        """Navigate to a URL."""

    def evaluate(self, expression: str, arg: Any = None) -> Any:
        """Run JavaScript expression on page."""


@dataclass(frozen=True)
class BrowserSessionOptions:
    engine: str
    headless: bool
    navigation_timeout_ms: int
    action_timeout_ms: int
    locale: str
    viewport_width: int
    viewport_height: int
    user_agent: str | None = None
    mask_webdriver: bool = True

    @property
    def launch_args(self) -> tuple[str, ...]:
        if self.engine == "chromium" and self.mask_webdriver:
            return CHROMIUM_STEALTH_ARGS
        return ()


class PlaywrightBrowserSession:
    """Own a playwright/browser/context triple; teardown always runs in reverse order."""

    def __init__(
        self,
        config: RuntimeConfig,
        *,
        headless: bool | None = None,
        playwright_factory: Callable[[], AbstractContextManager[Any]] | None = None,
    ) -> None:
        browser = config.browser
        self.options = BrowserSessionOptions(
            engine=browser.engine,
            headless=browser.headless if headless is None else headless,
            navigation_timeout_ms=browser.navigation_timeout_ms,
            action_timeout_ms=browser.action_timeout_ms,
            locale=browser.locale,
            viewport_width=browser.viewport_width,
            viewport_height=browser.viewport_height,
            user_agent=browser.user_agent,
            mask_webdriver=browser.mask_webdriver,
        )
        self._playwright_factory = playwright_factory or _default_playwright_factory
        self._playwright_cm: AbstractContextManager[Any] | None = None
        self._browser: Any | None = None
        self._context: Any | None = None

    @property
    def is_open(self) -> bool:
        return self._context is not None

    def open(self) -> None:
        if self._context is not None:
            return

        try:
            self._playwright_cm = self._playwright_factory()
            playwright = self._playwright_cm.__enter__()

            launcher = getattr(playwright, self.options.engine, None)
            if launcher is None:
                raise BrowserError(f"Playwright has no '{self.options.engine}' browser type.")

            launch_kwargs: dict[str, Any] = {"headless": self.options.headless}
            if self.options.launch_args:
                launch_kwargs["args"] = list(self.options.launch_args)
            self._browser = launcher.launch(**launch_kwargs)

            self._context = self._browser.new_context(**self._context_kwargs())
            self._context.set_default_timeout(self.options.action_timeout_ms)
            if self.options.mask_webdriver:
                self._context.add_init_script(MASK_WEBDRIVER_SCRIPT)
        except BrowserError:
            self._teardown(raise_on_error=False)
            raise
        except Exception as exc:
            self._teardown(raise_on_error=False)
            raise BrowserError(f"Failed to open browser session: {exc}") from exc

    def new_page(self) -> BrowserPage:
        if self._context is None:
            self.open()
        if self._context is None:
            raise BrowserError("Browser session is not open.")

        try:
            page = self._context.new_page()
            page.set_default_navigation_timeout(self.options.navigation_timeout_ms)
            return page
        except Exception as exc:
            raise BrowserError(f"Failed to create browser page: {exc}") from exc

    def open_page(self, url: str, *, wait_until: str = "networkidle") -> BrowserPage:
        """Create a page and navigate it to `url`."""
        page = self.new_page()
        try:
            page.goto(url, wait_until=wait_until)
        except Exception as exc:
            raise BrowserError(f"Failed to load '{url}': {exc}") from exc
        return page

    def close(self) -> None:
        self._teardown(raise_on_error=True)

    def __enter__(self) -> PlaywrightBrowserSession:
        self.open()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> bool:
        try:
            self.close()
        except BrowserError:
            if exc_type is None:
                raise
        return False

    def _context_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "locale": self.options.locale,
            "viewport": {
                "width": self.options.viewport_width,
                "height": self.options.viewport_height,
            },
        }
        if self.options.user_agent:
            kwargs["user_agent"] = self.options.user_agent
        return kwargs

    def _teardown(self, *, raise_on_error: bool) -> None:
        errors: list[str] = []
        for label, attribute in (("context", "_context"), ("browser", "_browser")):
            resource = getattr(self, attribute)
            if resource is None:
                continue
            try:
                resource.close()
            except Exception as exc:
                errors.append(f"{label} close failed: {exc}")
            finally:
                setattr(self, attribute, None)

        if self._playwright_cm is not None:
            try:
                self._playwright_cm.__exit__(None, None, None)
            except Exception as exc:
                errors.append(f"playwright teardown failed: {exc}")
            finally:
                self._playwright_cm = None

        if raise_on_error and errors:
            raise BrowserError("Browser session teardown failed: " + "; ".join(errors))


def _default_playwright_factory() -> AbstractContextManager[Any]:
    try:
        from playwright.sync_api import sync_playwright
    except ModuleNotFoundError as exc:
        raise BrowserError(
            "Playwright is not installed. Install dependencies and run "
            "`python -m playwright install chromium`."
        ) from exc
    return sync_playwright()
