"""Tests for conversation context building."""

from types import SimpleNamespace

from app.chat.context import ChatContextBuilder, to_history
from app.services.prompts import COUPLES_SYSTEM_PROMPT, PRIVATE_SYSTEM_PROMPT

from conftest import FakeProvider


def _row(content, is_ai=False):
    return SimpleNamespace(content=content, is_ai=is_ai)


def test_to_history_maps_roles_and_skips_placeholders():
    rows = [_row("I feel stuck"), _row("Tell me more", is_ai=True), _row("", is_ai=True)]

    assert to_history(rows) == [
        {"role": "user", "content": "I feel stuck"},
        {"role": "assistant", "content": "Tell me more"},
    ]


def test_system_prompt_follows_session_type():
    builder = ChatContextBuilder(FakeProvider())

    couples = builder.build_request("couples", [])
    private = builder.build_request("private", [])

    assert couples.system_prompt == COUPLES_SYSTEM_PROMPT
    assert private.system_prompt == PRIVATE_SYSTEM_PROMPT


def test_history_is_kept_in_order_and_passed_through():
    builder = ChatContextBuilder(FakeProvider())
    history = [
        {"role": "user", "content": "first"},
        {"role": "assistant", "content": "second"},
        {"role": "user", "content": "third"},
    ]

    request = builder.build_request("private", history, model="gpt-4o", temperature=0.2, max_tokens=50)

    assert [m.content for m in request.messages] == ["first", "second", "third"]
    assert request.model == "gpt-4o"
    assert request.temperature == 0.2
    assert request.max_tokens == 50
    assert request.to_openai_messages()[0] == {"role": "system", "content": PRIVATE_SYSTEM_PROMPT}


def test_oldest_history_is_dropped_over_budget():
    provider = FakeProvider()
    system_tokens = provider.estimate_tokens(PRIVATE_SYSTEM_PROMPT)
    # Room for exactly two 100-character messages (25 tokens each)
    builder = ChatContextBuilder(provider, max_context_tokens=system_tokens + 50)
    history = [{"role": "user", "content": str(i) * 100} for i in range(4)]

    request = builder.build_request("private", history)

    assert [m.content for m in request.messages] == ["2" * 100, "3" * 100]
