"""Pluggable next-action proposals for steps that stop yielding identifiers."""

from __future__ import annotations

from typing import Any, Protocol

from scroll_harvester.models import PageSnapshot, ProposedAction

DEFAULT_EXCERPT_CHARS = 2_000
VISIBLE_TEXT_SCRIPT = "() => (document.body ? document.body.innerText : '')"


class ActionProposer(Protocol):
    def propose_action(self, snapshot: PageSnapshot) -> ProposedAction | None:
        """Suggest one page action, or None to let the controller continue unaided."""


class SnapshotPage(Protocol):
    @property
    def url(self) -> str:
        """Current page URL."""

    def evaluate(self, expression: str, arg: Any = None) -> Any:
        """Run JavaScript expression on page."""


def capture_snapshot(
    page: SnapshotPage,
    *,
    step: int,
    collected: int,
    excerpt_chars: int = DEFAULT_EXCERPT_CHARS,
) -> PageSnapshot:
    text = page.evaluate(VISIBLE_TEXT_SCRIPT)
    title_fn = getattr(page, "title", None)
    title = title_fn() if callable(title_fn) else ""
    return PageSnapshot(
        url=page.url,
        title=str(title or ""),
        text_excerpt=" ".join(str(text or "").split())[:excerpt_chars],
        step=step,
        collected=collected,
    )
