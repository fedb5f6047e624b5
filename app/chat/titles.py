"""Automatic session titles derived from the first exchange."""

import logging
import re
from typing import List, Optional

from app.services.ai_service import ChatMessage, CompletionProvider, CompletionRequest
from app.services.prompts import TITLE_SYSTEM_PROMPT, build_title_prompt
from .errors import TitleGenerationError
from .events import TitleUpdateEvent
from .storage import ChatStorage
from .websocket import SessionRegistry


logger = logging.getLogger("app.chat.titles")

# Titles assigned automatically on creation; anything else counts as customized.
DEFAULT_TITLE_PATTERNS = [
    re.compile(r"^(private|couples?|personal|cupple) session( \d+)?$", re.IGNORECASE),
    re.compile(r"^(private|couples) therapy session( \d+)?$", re.IGNORECASE),
    re.compile(r"^new session( \d+)?$", re.IGNORECASE),
]

MAX_PRIOR_REPLIES = 2
MAX_TITLE_WORDS = 6
MAX_TITLE_LENGTH = 60

_PREFIX_RE = re.compile(r"^(session\s+)?title\s*[:\-]\s*", re.IGNORECASE)


def is_default_title(title: Optional[str]) -> bool:
    if not title:
        return True
    return any(pattern.match(title.strip()) for pattern in DEFAULT_TITLE_PATTERNS)


def clean_title(raw: str) -> str:
    """Normalize model output into a title, or raise ``TitleGenerationError``."""
    lines = [line for line in raw.strip().splitlines() if line.strip()]
    if not lines:
        raise TitleGenerationError("Empty title")

    title = _PREFIX_RE.sub("", lines[0].strip())
    title = title.strip().strip("\"'`*#").strip()
    title = title.rstrip(".!?;:,").strip()
    title = re.sub(r"\s+", " ", title)

    if not title:
        raise TitleGenerationError("Empty title")
    if len(title) > MAX_TITLE_LENGTH:
        raise TitleGenerationError(f"Title too long: {len(title)} characters")
    if len(title.split()) > MAX_TITLE_WORDS:
        raise TitleGenerationError(f"Title has too many words: {title!r}")
    return title


class SessionTitleGenerator:
    """Replaces a default session title after the first replies.

    Never raises: any failure leaves the current title in place.
    """

    def __init__(
        self,
        storage: ChatStorage,
        registry: SessionRegistry,
        provider: CompletionProvider,
        *,
        streaming: bool = False,
        model: Optional[str] = None,
        max_tokens: int = 20,
    ):
        self.storage = storage
        self.registry = registry
        self.provider = provider
        self.streaming = streaming
        self.model = model
        self.max_tokens = max_tokens

    async def maybe_generate(self, session_id: int) -> Optional[str]:
        """Generate, persist and broadcast a title if the session still has a default one."""
        try:
            return await self._generate(session_id)
        except Exception as e:
            logger.info("Keeping existing title for session %s: %s", session_id, e)
            return None

    async def _generate(self, session_id: int) -> Optional[str]:
        session = await self.storage.get_session(session_id)
        if session is None:
            return None

        if not is_default_title(session.title):
            logger.debug("Session %s already has a custom title", session_id)
            return None

        completed = await self.storage.count_completed_ai_messages(session_id)
        if completed > MAX_PRIOR_REPLIES:
            logger.debug("Session %s is past its first exchanges (%d replies)", session_id, completed)
            return None

        first_user, first_reply = await self.storage.get_first_exchange(session_id)
        if first_user is None or first_reply is None:
            return None

        request = CompletionRequest(
            messages=[
                ChatMessage(
                    role="user",
                    content=build_title_prompt(
                        first_user_message=first_user.content,
                        first_reply=first_reply.content,
                    ),
                )
            ],
            system_prompt=TITLE_SYSTEM_PROMPT,
            model=self.model,
            temperature=0.3,
            max_tokens=self.max_tokens,
        )

        recipients = session.recipient_ids()
        if not self.streaming:
            raw = await self.provider.complete(request)
            return await self._apply_title(session_id, recipients, raw)

        partials: List[str] = []
        try:
            raw = await self._stream_title(session_id, recipients, request, partials)
            title = await self._apply_title(session_id, recipients, raw)
        except Exception:
            if partials:
                await self._restore_title(session_id, recipients)
            raise
        if title is None and partials:
            await self._restore_title(session_id, recipients)
        return title

    async def _apply_title(self, session_id: int, recipients: List[str], raw: str) -> Optional[str]:
        title = clean_title(raw)

        # A rename may have landed while the title was generating
        current = await self.storage.get_session(session_id)
        if current is None or not is_default_title(current.title):
            return None

        await self.storage.rename_session(session_id, title)
        logger.info("Session title generated: session_id=%s, title=%s", session_id, title)

        event = TitleUpdateEvent(session_id=session_id, title=title)
        for user_id in recipients:
            await self.registry.send(user_id, event)
        return title

    async def _stream_title(
        self,
        session_id: int,
        recipients: List[str],
        request: CompletionRequest,
        partials: List[str],
    ) -> str:
        parts: List[str] = []
        async for fragment in self.provider.stream_completion(request):
            parts.append(fragment)
            partial = "".join(parts).strip().strip("\"'")
            if not partial:
                continue
            if len(partial) > MAX_TITLE_LENGTH or len(partial.split()) > MAX_TITLE_WORDS:
                continue
            partials.append(partial)
            await self.registry.broadcast(
                recipients,
                TitleUpdateEvent(session_id=session_id, title=partial, is_final=False),
            )
        return "".join(parts)

    async def _restore_title(self, session_id: int, recipients: List[str]) -> None:
        """Replace streamed partials on clients with the title that was kept."""
        current = await self.storage.get_session(session_id)
        if current is None:
            return
        await self.registry.broadcast(
            recipients,
            TitleUpdateEvent(session_id=session_id, title=current.title, is_final=True),
        )
