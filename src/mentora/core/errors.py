"""
Error taxonomy.

- ConfigurationError: fatal, aborts construction, never retried
- InvalidMessage: user input rejected before any AI call
- ChunkDeliveryError: the caller's chunk callback failed; no fallback is sent
- TransientAIFailure: recovered locally with a fallback response
- PersistenceFailure: logged; reads degrade to cache-only records
"""


class MentoraError(Exception):
    """Base class for all mentora errors."""


class ConfigurationError(MentoraError):
    """Missing credentials or configuration the core cannot run without."""


class InvalidMessage(MentoraError):
    """User message empty after sanitization; rejected before any AI call."""


class ChunkDeliveryError(MentoraError):
    """The caller's on_chunk callback raised; the reply was not delivered."""


class TransientAIFailure(MentoraError):
    """Failure of the AI capability (network, quota, safety filter, bad payload)."""

    def __init__(self, message: str, reason: str = "unknown"):
        super().__init__(message)
        self.reason = reason


class PersistenceFailure(MentoraError):
    """Read, write or delete against the persistence port failed."""

    def __init__(self, message: str, keys: list[str] | None = None):
        super().__init__(message)
        self.keys = keys or []
