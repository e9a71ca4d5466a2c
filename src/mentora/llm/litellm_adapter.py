"""LiteLLM adapter - streaming chat and image generation through any vendor."""

import base64
from collections.abc import AsyncIterator
from typing import Any

import litellm
from litellm import acompletion, aimage_generation

from mentora.core.config import Settings
from mentora.core.errors import ConfigurationError, TransientAIFailure
from mentora.core.logging import get_logger
from mentora.core.types import Attachment, HistoryTurn, Role

logger = get_logger("llm.litellm_adapter")

# Disable LiteLLM's verbose logging
litellm.suppress_debug_info = True

MIN_IMAGE_PROMPT_LENGTH = 5


def classify_failure(error: BaseException) -> str:
    """Map a vendor exception to a coarse failure reason."""
    if isinstance(error, TransientAIFailure):
        return error.reason
    if isinstance(error, litellm.RateLimitError):
        return "quota"
    if isinstance(error, litellm.ContentPolicyViolationError):
        return "safety"
    if isinstance(error, (litellm.APIConnectionError, litellm.Timeout, litellm.ServiceUnavailableError)):
        return "network"

    text = str(error).lower()
    if "quota" in text or "rate limit" in text:
        return "quota"
    if "safety" in text or "blocked" in text:
        return "safety"
    return "unknown"


def build_messages(
    system_instruction: str,
    history: list[HistoryTurn],
    new_message: str,
    attachment: Attachment | None = None,
) -> list[dict[str, Any]]:
    """Build the OpenAI-format message list LiteLLM expects."""
    messages: list[dict[str, Any]] = []
    if system_instruction:
        messages.append({"role": "system", "content": system_instruction})
    messages.extend(turn.to_llm_format() for turn in history)
    messages.append(HistoryTurn(role=Role.USER, text=new_message, attachment=attachment).to_llm_format())
    return messages


class LiteLLMCapability:
    """AICapability backed by litellm.acompletion / aimage_generation."""

    def __init__(
        self,
        api_key: str,
        chat_model: str,
        image_model: str,
        max_tokens: int = 2048,
        temperature: float = 0.7,
    ):
        if not api_key:
            raise ConfigurationError(
                "AI API key is missing. Set MENTORA_AI_API_KEY in the environment or .env"
            )
        self.api_key = api_key
        self.chat_model = chat_model
        self.image_model = image_model
        self.max_tokens = max_tokens
        self.temperature = temperature

    @classmethod
    def from_settings(cls, settings: Settings) -> "LiteLLMCapability":
        return cls(
            api_key=settings.ai_api_key,
            chat_model=settings.chat_model,
            image_model=settings.image_model,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
        )

    async def stream_chat(
        self,
        system_instruction: str,
        history: list[HistoryTurn],
        new_message: str,
        attachment: Attachment | None = None,
    ) -> AsyncIterator[str]:
        """Stream reply fragments. Vendor errors become TransientAIFailure."""
        messages = build_messages(system_instruction, history, new_message, attachment)
        logger.debug(
            f"LiteLLM stream request: model={self.chat_model}, "
            f"messages={len(messages)}, attachment={attachment is not None}"
        )

        try:
            stream = await acompletion(
                model=self.chat_model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                api_key=self.api_key,
                stream=True,
            )
        except Exception as e:
            reason = classify_failure(e)
            logger.error(f"LiteLLM request failed ({reason}): {e}")
            raise TransientAIFailure(str(e), reason=reason) from e

        chunks = 0
        try:
            async for chunk in stream:
                try:
                    text = chunk.choices[0].delta.content
                except (AttributeError, IndexError) as e:
                    raise TransientAIFailure(f"Malformed stream chunk: {e}", reason="malformed") from e
                if text:
                    chunks += 1
                    yield text
        except TransientAIFailure:
            raise
        except Exception as e:
            reason = classify_failure(e)
            logger.error(f"LiteLLM stream failed after {chunks} chunks ({reason}): {e}")
            raise TransientAIFailure(str(e), reason=reason) from e
        finally:
            # Release the HTTP connection on completion, failure or cancellation
            close = getattr(stream, "aclose", None)
            if close is not None:
                await close()

        logger.debug(f"LiteLLM stream complete: {chunks} chunks")

    async def generate_image(self, prompt: str) -> bytes:
        prompt = prompt.strip()
        if len(prompt) < MIN_IMAGE_PROMPT_LENGTH:
            raise ValueError("Prompt too short for image generation")

        logger.info(f"Image generation request: model={self.image_model}, prompt={len(prompt)} chars")
        try:
            response = await aimage_generation(
                model=self.image_model,
                prompt=prompt,
                n=1,
                api_key=self.api_key,
                response_format="b64_json",
            )
        except Exception as e:
            reason = classify_failure(e)
            logger.error(f"Image generation failed ({reason}): {e}")
            raise TransientAIFailure(str(e), reason=reason) from e

        data = response.data[0].b64_json if response.data else None
        if not data:
            raise TransientAIFailure("Image response contained no image", reason="malformed")
        return base64.b64decode(data)
