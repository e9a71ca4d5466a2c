"""
Generative-AI capability interface.

The core needs exactly two things from a model vendor: an incremental text
stream for a chat turn, and image generation.
"""

from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

from mentora.core.types import Attachment, HistoryTurn


@runtime_checkable
class AICapability(Protocol):
    """Protocol for generative-AI backends."""

    def stream_chat(
        self,
        system_instruction: str,
        history: list[HistoryTurn],
        new_message: str,
        attachment: Attachment | None = None,
    ) -> AsyncIterator[str]:
        """Yield reply text incrementally (each item is a new fragment).

        Raises TransientAIFailure (or any exception) on failure.
        """
        ...

    async def generate_image(self, prompt: str) -> bytes:
        """Generate one image and return its bytes."""
        ...
