"""LLM-backed action proposer built on litellm's completion API."""

from __future__ import annotations

from collections.abc import Callable
import json
import re
from typing import Any

from scroll_harvester.config import FallbackConfig
from scroll_harvester.errors import ProposalError
from scroll_harvester.logging import get_logger
from scroll_harvester.models import ActionKind, PageSnapshot, ProposedAction

logger = get_logger(__name__)

CompletionFn = Callable[..., Any]

SYSTEM_PROMPT = (
    "You help a browser automation tool that scrolls a search results page and collects result links. "
    "The last scroll found no new results. Suggest exactly one next action as a JSON object: "
    '{"action": "scroll", "delta": <signed pixels>} to move the page, '
    '{"action": "click", "selector": "<css selector>"} to press a control such as a '
    'load-more button or next-page link, or {"action": "none"} when nothing would help.'
)

_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(\{.*\})\s*```", re.DOTALL)


class LiteLLMActionProposer:
    def __init__(
        self,
        config: FallbackConfig | None = None,
        *,
        completion_fn: CompletionFn | None = None,
    ) -> None:
        self._config = config or FallbackConfig()
        self._completion_fn = completion_fn

    def propose_action(self, snapshot: PageSnapshot) -> ProposedAction | None:
        completion = self._completion_fn or _default_completion_fn()
        try:
            response = completion(
                model=self._config.model,
                messages=build_messages(snapshot, excerpt_chars=self._config.excerpt_chars),
                temperature=self._config.temperature,
                max_tokens=self._config.max_tokens,
                response_format={"type": "json_object"},
            )
        except Exception as exc:
            raise ProposalError(f"Completion call to '{self._config.model}' failed: {exc}") from exc

        action = parse_proposed_action(_response_content(response))
        logger.debug("Model %s proposed %s", self._config.model, action)
        return action


def build_messages(snapshot: PageSnapshot, *, excerpt_chars: int) -> list[dict[str, str]]:
    user_prompt = "\n".join(
        (
            f"URL: {snapshot.url}",
            f"Title: {snapshot.title}",
            f"Step: {snapshot.step}",
            f"Collected so far: {snapshot.collected}",
            "Visible text:",
            snapshot.text_excerpt[:excerpt_chars],
        )
    )
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


def parse_proposed_action(content: str) -> ProposedAction | None:
    """Parse a model reply into an action; `{"action": "none"}` means no action."""
    text = content.strip()
    fenced = _FENCED_JSON_RE.search(text)
    if fenced is not None:
        text = fenced.group(1)
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ProposalError(f"Model reply is not JSON: {content[:200]!r}") from exc
    if not isinstance(payload, dict):
        raise ProposalError(f"Model reply must be a JSON object, got {type(payload).__name__}.")

    kind = str(payload.get("action", "")).strip().lower()
    if kind in ("", "none"):
        return None
    try:
        if kind == ActionKind.SCROLL.value:
            delta = payload.get("delta")
            if isinstance(delta, bool) or not isinstance(delta, int | float):
                raise ProposalError(f"Scroll proposal needs a numeric delta, got {delta!r}.")
            return ProposedAction(ActionKind.SCROLL, delta=int(delta))
        if kind == ActionKind.CLICK.value:
            selector = payload.get("selector")
            if not isinstance(selector, str):
                raise ProposalError(f"Click proposal needs a selector string, got {selector!r}.")
            return ProposedAction(ActionKind.CLICK, selector=selector.strip())
    except ValueError as exc:
        raise ProposalError(str(exc)) from exc
    raise ProposalError(f"Unknown proposed action '{kind}'.")


def _response_content(response: Any) -> str:
    try:
        choice = response["choices"][0] if isinstance(response, dict) else response.choices[0]
        message = choice["message"] if isinstance(choice, dict) else choice.message
        content = message["content"] if isinstance(message, dict) else message.content
    except (AttributeError, IndexError, KeyError, TypeError) as exc:
        raise ProposalError(f"Completion response has no message content: {response!r}") from exc
    if not isinstance(content, str):
        raise ProposalError("Completion response content is empty.")
    return content


def _default_completion_fn() -> CompletionFn:
    try:
        import litellm
    except ModuleNotFoundError as exc:
        raise ProposalError(
            "litellm is not installed. Install the `llm` extra: `pip install scroll-harvester[llm]`."
        ) from exc
    litellm.drop_params = True
    return litellm.completion
