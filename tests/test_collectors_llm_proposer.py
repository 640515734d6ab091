"""LLM fallback proposer request building and reply parsing."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest

from scroll_harvester.collectors.llm_proposer import (
    SYSTEM_PROMPT,
    LiteLLMActionProposer,
    build_messages,
    parse_proposed_action,
)
from scroll_harvester.config import FallbackConfig
from scroll_harvester.errors import ProposalError
from scroll_harvester.models import ActionKind, PageSnapshot, ProposedAction

SNAPSHOT = PageSnapshot(
    url="https://conf.example.org/search?q=robots",
    title="Search results",
    text_excerpt="Papers (120) Sessions (4) Showing 20 of 120 Load more",
    step=6,
    collected=20,
)


class RecordingCompletion:
    def __init__(self, response: Any = None, *, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def __call__(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def _dict_response(content: str) -> dict[str, Any]:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def test_propose_action_sends_configured_request() -> None:
    completion = RecordingCompletion(_dict_response('{"action": "click", "selector": "button.load-more"}'))
    config = FallbackConfig(enabled=True, model="ollama/llama3", temperature=0.2, max_tokens=64, excerpt_chars=12)
    proposer = LiteLLMActionProposer(config, completion_fn=completion)

    action = proposer.propose_action(SNAPSHOT)

    assert action == ProposedAction(ActionKind.CLICK, selector="button.load-more")
    call = completion.calls[0]
    assert call["model"] == "ollama/llama3"
    assert call["temperature"] == 0.2
    assert call["max_tokens"] == 64
    assert call["response_format"] == {"type": "json_object"}
    assert call["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert call["messages"][1]["content"].endswith("Papers (120)")


def test_propose_action_reads_attribute_style_responses() -> None:
    response = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content='{"action": "scroll", "delta": -400}'))]
    )
    proposer = LiteLLMActionProposer(completion_fn=RecordingCompletion(response))
    assert proposer.propose_action(SNAPSHOT) == ProposedAction(ActionKind.SCROLL, delta=-400)


def test_propose_action_wraps_completion_errors() -> None:
    proposer = LiteLLMActionProposer(completion_fn=RecordingCompletion(error=TimeoutError("read timed out")))
    with pytest.raises(ProposalError, match="read timed out"):
        proposer.propose_action(SNAPSHOT)


def test_propose_action_rejects_responses_without_content() -> None:
    proposer = LiteLLMActionProposer(completion_fn=RecordingCompletion({"choices": []}))
    with pytest.raises(ProposalError, match="no message content"):
        proposer.propose_action(SNAPSHOT)


def test_build_messages_lists_page_context() -> None:
    messages = build_messages(SNAPSHOT, excerpt_chars=2_000)
    user = messages[1]["content"]
    assert "URL: https://conf.example.org/search?q=robots" in user
    assert "Step: 6" in user
    assert "Collected so far: 20" in user
    assert user.endswith("Load more")


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        ('{"action": "scroll", "delta": 650.7}', ProposedAction(ActionKind.SCROLL, delta=650)),
        ('```json\n{"action": "click", "selector": " a.next "}\n```', ProposedAction(ActionKind.CLICK, selector="a.next")),
        ('{"action": "none"}', None),
        ("{}", None),
    ],
)
def test_parse_proposed_action_accepts_valid_replies(content: str, expected: ProposedAction | None) -> None:
    assert parse_proposed_action(content) == expected


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("scroll down a bit", "not JSON"),
        ('["scroll"]', "must be a JSON object"),
        ('{"action": "scroll", "delta": "far"}', "numeric delta"),
        ('{"action": "scroll", "delta": true}', "numeric delta"),
        ('{"action": "scroll", "delta": 0}', "non-zero delta"),
        ('{"action": "click"}', "selector string"),
        ('{"action": "click", "selector": "  "}', "requires a selector"),
        ('{"action": "hover", "selector": "a"}', "Unknown proposed action"),
    ],
)
def test_parse_proposed_action_rejects_invalid_replies(content: str, message: str) -> None:
    with pytest.raises(ProposalError, match=message):
        parse_proposed_action(content)
