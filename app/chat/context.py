"""Conversation context management for chat."""

import logging
from typing import Dict, List, Sequence

from app.services.ai_service import ChatMessage, CompletionProvider, CompletionRequest
from app.services.prompts import build_system_prompt
from .models import Message


logger = logging.getLogger("app.chat.context")

# Max tokens for the entire context (system + history)
MAX_CONTEXT_TOKENS = 6000


def to_history(messages: Sequence[Message]) -> List[Dict[str, str]]:
    """Map stored messages to ``{role, content}`` pairs, skipping unfilled placeholders."""
    return [
        {"role": "assistant" if msg.is_ai else "user", "content": msg.content}
        for msg in messages
        if msg.content
    ]


class ChatContextBuilder:
    """
    Builds the completion request for a reply: the therapist persona for the
    session type followed by the conversation history, trimmed from the
    oldest end to fit the token budget.
    """

    def __init__(
        self,
        provider: CompletionProvider,
        max_context_tokens: int = MAX_CONTEXT_TOKENS,
    ):
        self.provider = provider
        self.max_context_tokens = max_context_tokens

    def build_request(
        self,
        session_type: str,
        history: Sequence[Dict[str, str]],
        *,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
    ) -> CompletionRequest:
        system_prompt = build_system_prompt(session_type)
        current_tokens = self.provider.estimate_tokens(system_prompt)

        kept: List[ChatMessage] = []
        # Start from the most recent messages and stop at the token limit
        for item in reversed(history):
            message_tokens = self.provider.estimate_tokens(item["content"])
            if current_tokens + message_tokens > self.max_context_tokens:
                logger.warning(
                    "Truncating chat history due to token limit. Kept %d of %d messages (%d tokens).",
                    len(kept),
                    len(history),
                    current_tokens,
                )
                break
            kept.insert(0, ChatMessage(role=item["role"], content=item["content"]))
            current_tokens += message_tokens

        logger.debug(
            "AI context built: session_type=%s, messages=%d, tokens=%d (estimated)",
            session_type,
            len(kept),
            current_tokens,
        )

        return CompletionRequest(
            messages=kept,
            system_prompt=system_prompt,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
        )
