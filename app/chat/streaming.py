"""Streaming reply generation for assistant placeholder messages.

One ``ReplyJob`` drives one completion call. Fragments are accumulated in
order; after each one the full text so far is written over the placeholder
row and a ``stream`` event goes to every recipient that is connected at that
moment. Completion and failure are both terminal and both end with a
``stream_complete`` event, so clients never wait on a reply that will not
arrive.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from app.core.messages import AI_FALLBACK_REPLY
from app.services.ai_service import CompletionProvider, GenerationError
from .context import ChatContextBuilder
from .events import AI_SENDER, MessageEvent, MessagePayload, StreamCompleteEvent, StreamEvent
from .storage import ChatStorage
from .titles import SessionTitleGenerator
from .tracker import CompletionTracker, ReplyState
from .websocket import SessionRegistry


logger = logging.getLogger("app.chat.streaming")

DEFAULT_GENERATION_TIMEOUT = 120.0


@dataclass
class ReplyJob:
    """Everything needed to generate one assistant reply."""

    session_id: int
    session_type: str
    message_id: int
    recipients: List[str]
    history: List[Dict[str, str]] = field(default_factory=list)


class StreamingReplyCoordinator:
    def __init__(
        self,
        storage: ChatStorage,
        registry: SessionRegistry,
        provider: CompletionProvider,
        tracker: CompletionTracker,
        context_builder: Optional[ChatContextBuilder] = None,
        title_generator: Optional[SessionTitleGenerator] = None,
        *,
        timeout_seconds: Optional[float] = DEFAULT_GENERATION_TIMEOUT,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
    ):
        self.storage = storage
        self.registry = registry
        self.provider = provider
        self.tracker = tracker
        self.context_builder = context_builder or ChatContextBuilder(provider)
        self.title_generator = title_generator
        self.timeout_seconds = timeout_seconds
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._tasks: Set[asyncio.Task] = set()

    async def mark_pending(self, message_id: int) -> None:
        await self.tracker.set_state(message_id, ReplyState.PENDING)

    def start(self, job: ReplyJob) -> asyncio.Task:
        """Generate the reply in a detached task; failures never reach the caller."""
        task = asyncio.create_task(
            self._run_guarded(job),
            name=f"reply-{job.message_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait until every in-flight reply has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def get_state(self, message_id: int) -> Optional[ReplyState]:
        return await self.tracker.get_state(message_id)

    async def is_complete(self, message_id: int) -> bool:
        state = await self.tracker.get_state(message_id)
        # Nothing survives a restart, so an untracked message is not generating
        return state is None or state.is_terminal

    async def run(self, job: ReplyJob) -> ReplyState:
        try:
            content = await asyncio.wait_for(self._stream(job), timeout=self.timeout_seconds)
            if not content.strip():
                raise GenerationError("Completion service returned an empty reply")
            await self.storage.update_message_content(job.message_id, content)
        except Exception as e:
            logger.error(
                "Reply generation failed: message_id=%s, session_id=%s, error=%s: %s",
                job.message_id,
                job.session_id,
                type(e).__name__,
                e,
            )
            await self._fail(job)
            return ReplyState.FAILED

        await self.tracker.set_state(job.message_id, ReplyState.COMPLETE)
        logger.info(
            "Reply complete: message_id=%s, session_id=%s, length=%d",
            job.message_id,
            job.session_id,
            len(content),
        )
        await self._broadcast_final(job, content)

        if self.title_generator is not None:
            await self.title_generator.maybe_generate(job.session_id)

        return ReplyState.COMPLETE

    async def _run_guarded(self, job: ReplyJob) -> None:
        try:
            await self.run(job)
        except Exception:
            logger.exception("Unhandled error in reply task for message %s", job.message_id)
            state = await self.tracker.get_state(job.message_id)
            if state is None or not state.is_terminal:
                await self.tracker.set_state(job.message_id, ReplyState.FAILED)

    async def _stream(self, job: ReplyJob) -> str:
        await self.tracker.set_state(job.message_id, ReplyState.STREAMING)

        request = self.context_builder.build_request(
            job.session_type,
            job.history,
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )

        parts: List[str] = []
        async for fragment in self.provider.stream_completion(request):
            if not fragment:
                continue
            parts.append(fragment)
            full_content = "".join(parts)
            await self.storage.update_message_content(job.message_id, full_content)
            await self.registry.broadcast(
                job.recipients,
                StreamEvent(
                    message_id=job.message_id,
                    session_id=job.session_id,
                    content=fragment,
                    full_content=full_content,
                ),
            )

        return "".join(parts)

    async def _fail(self, job: ReplyJob) -> None:
        try:
            await self.storage.update_message_content(job.message_id, AI_FALLBACK_REPLY)
        except Exception:
            logger.exception("Failed to persist fallback reply for message %s", job.message_id)
        await self.tracker.set_state(job.message_id, ReplyState.FAILED)
        await self._broadcast_final(job, AI_FALLBACK_REPLY)

    async def _broadcast_final(self, job: ReplyJob, content: str) -> None:
        await self.registry.broadcast(
            job.recipients,
            StreamCompleteEvent(
                message_id=job.message_id,
                session_id=job.session_id,
                full_content=content,
            ),
        )

        try:
            message = await self.storage.get_message(job.message_id)
        except Exception:
            logger.exception("Failed to load final reply %s", job.message_id)
            message = None

        if message is not None:
            payload = MessagePayload.from_message(message, sender=AI_SENDER)
            payload.content = content
        else:
            payload = MessagePayload(
                id=job.message_id,
                session_id=job.session_id,
                is_ai=True,
                content=content,
                sender=AI_SENDER,
            )
        await self.registry.broadcast(job.recipients, MessageEvent(message=payload))
