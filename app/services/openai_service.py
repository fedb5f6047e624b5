from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Dict

import tiktoken
from openai import AsyncOpenAI, OpenAIError

from app.services.ai_service import CompletionRequest, GenerationError


logger = logging.getLogger("app.ai.openai")


class OpenAIProvider:
    """Completion service backed by the OpenAI chat completions API.

    A single attempt is made per request; failures surface as
    ``GenerationError`` and the caller decides on the fallback.
    """

    # Class-level cache for encodings to avoid repeated downloads
    _encoding_cache: Dict[str, Any] = {}

    def __init__(self, api_key: str | None, default_model: str = "gpt-4o") -> None:
        # Without a key the provider still constructs; every call then fails
        # with GenerationError so replies fall back instead of crashing startup.
        self.client = AsyncOpenAI(api_key=api_key) if api_key else None
        self.default_model = default_model

    def _require_client(self) -> AsyncOpenAI:
        if self.client is None:
            raise GenerationError("OpenAI API key is not configured")
        return self.client

    def _get_encoding(self, model: str):
        """
        Get tiktoken encoding for a model, with caching and error handling.
        Returns None when no encoding can be loaded.
        """
        if model in self._encoding_cache:
            return self._encoding_cache[model]

        try:
            encoding = tiktoken.encoding_for_model(model)
        except KeyError:
            logger.debug("Model %s not found in tiktoken registry, trying default encoding", model)
            try:
                encoding = tiktoken.get_encoding("cl100k_base")
            except Exception as e:
                logger.warning("Failed to get cl100k_base encoding: %s. Will use fallback estimation.", e)
                encoding = None
        except Exception as e:
            # Encodings are downloaded on first use; offline hosts end up here
            logger.warning(
                "Failed to load tiktoken encoding for model %s: %s. Will use fallback estimation.",
                model,
                e,
            )
            encoding = None

        self._encoding_cache[model] = encoding
        return encoding

    def estimate_tokens(self, text: str) -> int:
        """
        Estimate token count for text.
        Falls back to ~4 characters per token if no encoding is available.
        """
        enc = self._get_encoding(self.default_model)
        if enc is None:
            return max(1, len(text) // 4)
        return len(enc.encode(text))

    async def stream_completion(self, request: CompletionRequest) -> AsyncIterator[str]:
        client = self._require_client()
        model = request.model or self.default_model

        logger.info(
            "openai_stream_request",
            extra={"model": model, "message_count": len(request.messages)},
        )

        try:
            stream = await client.chat.completions.create(
                model=model,
                temperature=request.temperature,
                max_tokens=request.max_tokens,
                messages=request.to_openai_messages(),
                stream=True,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                fragment = chunk.choices[0].delta.content
                if fragment:
                    yield fragment
        except OpenAIError as e:
            raise GenerationError(f"OpenAI request failed: {e}") from e

    async def complete(self, request: CompletionRequest) -> str:
        client = self._require_client()
        model = request.model or self.default_model

        try:
            completion = await client.chat.completions.create(
                model=model,
                temperature=request.temperature,
                max_tokens=request.max_tokens,
                messages=request.to_openai_messages(),
            )
        except OpenAIError as e:
            raise GenerationError(f"OpenAI request failed: {e}") from e

        if not completion.choices or completion.choices[0].message is None:
            raise GenerationError("Invalid response format from OpenAI")

        content = completion.choices[0].message.content or ""
        usage = completion.usage
        logger.info(
            "openai_response",
            extra={
                "model": model,
                "prompt_tokens": usage.prompt_tokens if usage else None,
                "completion_tokens": usage.completion_tokens if usage else None,
            },
        )
        return content
