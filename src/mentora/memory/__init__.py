"""
Memory module - tiered contextual memory per user.

Tiers:
- session: recent messages and topics of one chat session (expires after 24h)
- behavioral: topic frequencies, learning progress, ongoing projects
- profile: name, teaching preferences, knowledge levels, goals

Storage: any PersistencePort (SQLite bundled) shadowed by a TTL cache
"""

from mentora.memory.cache import TTLCache
from mentora.memory.persistence import InMemoryPersistence, PersistencePort, SQLitePersistence
from mentora.memory.store import TieredMemoryStore

__all__ = [
    "InMemoryPersistence",
    "PersistencePort",
    "SQLitePersistence",
    "TTLCache",
    "TieredMemoryStore",
]
