"""Chat module - streaming response orchestration."""

from mentora.chat.orchestrator import ResponseOrchestrator, ResponseState

__all__ = ["ResponseOrchestrator", "ResponseState"]
