"""Streaming response orchestrator.

One call per user message:

    CLASSIFYING -> SHORT_CIRCUIT_DONE
    CLASSIFYING -> SYNTHESIZING -> STREAMING -> DONE
    STREAMING -> FAILED -> FALLBACK_DONE

A cancelled stream ends in CANCELLED and never falls back.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from enum import Enum

from mentora.core.errors import ChunkDeliveryError, ConfigurationError, TransientAIFailure
from mentora.core.logging import get_logger
from mentora.core.types import Attachment, Domain, HistoryTurn, domain_value
from mentora.knowledge.news import NewsService
from mentora.llm.base import AICapability
from mentora.memory.store import TieredMemoryStore
from mentora.prompting.context import build_system_instruction, synthesize
from mentora.responses.fallback import FallbackSelector
from mentora.safety.intents import Intent, classify, extract_news_category
from mentora.safety.validation import sanitize_history, validate_message

logger = get_logger("chat.orchestrator")

ChunkCallback = Callable[[str], None | Awaitable[None]]

NEWS_LIMIT = 5


class ResponseState(Enum):
    CLASSIFYING = "classifying"
    SHORT_CIRCUIT_DONE = "short_circuit_done"
    SYNTHESIZING = "synthesizing"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"
    FALLBACK_DONE = "fallback_done"
    CANCELLED = "cancelled"


async def _emit(on_chunk: ChunkCallback, text: str) -> None:
    try:
        result = on_chunk(text)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        raise ChunkDeliveryError(f"on_chunk callback failed: {e}") from e


class ResponseOrchestrator:
    """Composes intent detection, memory, the AI stream and fallbacks."""

    def __init__(
        self,
        ai: AICapability,
        memory: TieredMemoryStore,
        fallback: FallbackSelector,
        news: NewsService | None = None,
    ):
        self.ai = ai
        self.memory = memory
        self.fallback = fallback
        self.news = news or NewsService()
        self.last_state: ResponseState | None = None
        self._background: set[asyncio.Task] = set()

    def _set_state(self, state: ResponseState) -> None:
        self.last_state = state
        logger.debug(f"Response state: {state.value}")

    async def respond(
        self,
        instruction_template: str,
        history: list[HistoryTurn],
        new_message: str,
        on_chunk: ChunkCallback,
        domain: Domain | str | None,
        attachment: Attachment | None = None,
        *,
        user_id: str,
        session_id: str,
    ) -> str:
        """Produce the reply to new_message, relaying cumulative text to on_chunk.

        AI-side failures never surface: the caller gets a domain fallback
        instead. Only a missing domain (nothing to fall back on) raises
        ConfigurationError. A message empty after sanitization raises
        InvalidMessage before any AI call. A failing on_chunk raises
        ChunkDeliveryError and is not answered with a fallback.
        Cancellation propagates unchanged.
        """
        new_message = validate_message(new_message)
        history = sanitize_history(history)
        logger.info(
            f"Responding: user={user_id} session={session_id} "
            f"history={len(history)} message={len(new_message)} chars "
            f"attachment={attachment is not None}"
        )

        self._set_state(ResponseState.CLASSIFYING)
        short_circuit = await self._short_circuit(new_message)
        if short_circuit is not None:
            await _emit(on_chunk, short_circuit)
            self._set_state(ResponseState.SHORT_CIRCUIT_DONE)
            return short_circuit

        self._set_state(ResponseState.SYNTHESIZING)
        system_instruction = await self._system_instruction(
            instruction_template, user_id, session_id, domain
        )

        self._set_state(ResponseState.STREAMING)
        try:
            text = await self._stream(system_instruction, history, new_message, attachment, on_chunk)
        except asyncio.CancelledError:
            self._set_state(ResponseState.CANCELLED)
            logger.info(f"Response cancelled by caller: session={session_id}")
            raise
        except ChunkDeliveryError as e:
            self._set_state(ResponseState.FAILED)
            logger.error(f"Reply delivery failed, no fallback sent: {e}")
            raise
        except Exception as e:
            self._set_state(ResponseState.FAILED)
            reason = e.reason if isinstance(e, TransientAIFailure) else type(e).__name__
            logger.error(f"AI stream failed ({reason}): {e}")
            if domain is None:
                raise ConfigurationError("No domain configured to fall back on") from e

            text = self.fallback.select(domain, reason)
            await _emit(on_chunk, text)
            self._set_state(ResponseState.FALLBACK_DONE)
        else:
            self._set_state(ResponseState.DONE)
            logger.info(f"Stream complete: {len(text)} chars")

        if domain is not None:
            self._remember(session_id, user_id, new_message, domain)
        return text

    async def _short_circuit(self, message: str) -> str | None:
        """Fixed answer for a special intent, or None to go to the model."""
        intent = classify(message)
        if intent is None:
            return None

        logger.info(f"Intent matched, skipping AI call: {intent.value}")
        if intent == Intent.INJECTION_ATTEMPT:
            logger.warning("Prompt-injection / social-engineering attempt detected")
            return self.fallback.injection_refusal()
        if intent == Intent.CURRENT_EVENTS:
            return await self._current_events(message)
        if intent == Intent.AUTH_METHOD:
            return self.fallback.auth_method_notice()
        return self.fallback.origin_story()

    async def _current_events(self, message: str) -> str:
        category = extract_news_category(message)
        try:
            items = []
            if category is None:
                items = await self.news.search(message, NEWS_LIMIT)
            if not items:
                items = await self.news.get_current_news(category, NEWS_LIMIT)
            return self.news.format_for_chat(items)
        except Exception as e:
            logger.error(f"Failed to fetch current events: {e}")
            return self.fallback.news_unavailable()

    async def _system_instruction(
        self,
        template: str,
        user_id: str,
        session_id: str,
        domain: Domain | str | None,
    ) -> str:
        if domain is None:
            return template
        try:
            snapshot = await self.memory.snapshot(session_id, user_id)
            context = synthesize(snapshot.session, snapshot.behavioral, snapshot.profile, domain)
        except Exception as e:
            logger.warning(f"Context synthesis failed, answering without memory: {e}")
            return template
        logger.debug(f"Synthesized context for {user_id}/{domain_value(domain)}: {len(context)} chars")
        return build_system_instruction(template, context)

    async def _stream(
        self,
        system_instruction: str,
        history: list[HistoryTurn],
        new_message: str,
        attachment: Attachment | None,
        on_chunk: ChunkCallback,
    ) -> str:
        full_text = ""
        stream = self.ai.stream_chat(system_instruction, history, new_message, attachment)
        try:
            async for fragment in stream:
                if not fragment:
                    continue
                full_text += fragment
                await _emit(on_chunk, full_text)
        finally:
            close = getattr(stream, "aclose", None)
            if close is not None:
                await close()

        if not full_text:
            raise TransientAIFailure("AI stream produced no text", reason="malformed")
        return full_text

    def _remember(self, session_id: str, user_id: str, message: str, domain: Domain | str) -> None:
        """Fold the message into memory in the background (best-effort)."""
        task = asyncio.create_task(self._analyze(session_id, user_id, message, domain))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _analyze(self, session_id: str, user_id: str, message: str, domain: Domain | str) -> None:
        try:
            await self.memory.analyze_message(session_id, user_id, message, domain)
        except Exception as e:
            logger.warning(f"Memory update failed for {user_id} (ignored): {e}")

    async def wait_for_background(self) -> None:
        """Wait for pending memory updates."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def generate_image(self, prompt: str) -> bytes:
        """Generate an image, turning vendor failures into readable messages."""
        prompt = validate_message(prompt)
        try:
            return await self.ai.generate_image(prompt)
        except TransientAIFailure as e:
            if e.reason == "quota":
                raise TransientAIFailure(
                    "Limite de geração de imagens atingido. Tente novamente mais tarde.", e.reason
                ) from e
            if e.reason == "safety":
                raise TransientAIFailure(
                    "Prompt rejeitado por políticas de segurança. Tente reformular a sua solicitação.",
                    e.reason,
                ) from e
            raise
