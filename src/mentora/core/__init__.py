"""
Core module - configuration, shared types, errors, scheduling.

Components:
- config: Settings management via pydantic-settings
- types: Shared data structures (Domain, HistoryTurn, Attachment)
- errors: ConfigurationError / TransientAIFailure / PersistenceFailure
- scheduler: Periodic background maintenance
- logging: Structured logging setup
"""

from mentora.core.config import Settings
from mentora.core.types import Attachment, Domain, HistoryTurn, Role

__all__ = ["Settings", "Attachment", "Domain", "HistoryTurn", "Role"]
