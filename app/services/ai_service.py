from __future__ import annotations

from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional, Protocol


class GenerationError(Exception):
    """The completion service failed, is not configured, or returned nothing usable."""


@dataclass
class ChatMessage:
    """Represents a message in a chat conversation."""

    role: str  # user, assistant, system
    content: str


@dataclass
class CompletionRequest:
    """Request for a chat completion over a conversation history."""

    messages: List[ChatMessage]
    system_prompt: str
    model: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 500
    metadata: dict = field(default_factory=dict)

    def to_openai_messages(self) -> List[dict]:
        formatted = [{"role": "system", "content": self.system_prompt}]
        formatted.extend(
            {"role": msg.role, "content": msg.content}
            for msg in self.messages
            if msg.role != "system"
        )
        return formatted


class CompletionProvider(Protocol):
    def stream_completion(self, request: CompletionRequest) -> AsyncIterator[str]:  # pragma: no cover - interface
        """Yield reply fragments in the order they are produced."""
        ...

    async def complete(self, request: CompletionRequest) -> str:  # pragma: no cover - interface
        ...

    def estimate_tokens(self, text: str) -> int:  # pragma: no cover - interface
        ...
