"""Composition root.

Builds every collaborator explicitly and wires them together; nothing in the
package keeps process-wide state.
"""

import random
from dataclasses import dataclass
from datetime import timedelta

from mentora.chat.orchestrator import ResponseOrchestrator
from mentora.core.config import Settings
from mentora.core.logging import get_logger
from mentora.core.scheduler import Scheduler, TaskPriority
from mentora.knowledge.news import NewsService
from mentora.llm.base import AICapability
from mentora.llm.litellm_adapter import LiteLLMCapability
from mentora.memory.cache import TTLCache
from mentora.memory.persistence import PersistencePort, SQLitePersistence
from mentora.memory.store import TieredMemoryStore
from mentora.responses.fallback import FallbackSelector

logger = get_logger("app")


@dataclass
class MentoraApp:
    """All runtime components of one process."""

    settings: Settings
    persistence: PersistencePort
    cache: TTLCache
    memory: TieredMemoryStore
    orchestrator: ResponseOrchestrator
    scheduler: Scheduler

    async def start(self) -> None:
        """Open storage and start periodic maintenance."""
        if isinstance(self.persistence, SQLitePersistence):
            await self.persistence.connect()

        self.scheduler.schedule_task(
            task_id="cache_sweep",
            name="Cache sweep",
            callback=self.cache.sweep,
            interval=timedelta(seconds=self.settings.cache_sweep_interval_seconds),
            delay=timedelta(seconds=self.settings.cache_sweep_interval_seconds),
        )
        self.scheduler.schedule_task(
            task_id="session_purge",
            name="Expired session purge",
            callback=self.memory.purge_expired_sessions,
            interval=timedelta(seconds=self.settings.session_purge_interval_seconds),
            priority=TaskPriority.LOW,
        )
        await self.scheduler.start()
        logger.info("Mentora started")

    async def close(self) -> None:
        """Stop maintenance, flush background memory updates, close storage."""
        await self.scheduler.stop()
        await self.orchestrator.wait_for_background()
        if isinstance(self.persistence, SQLitePersistence):
            await self.persistence.close()
        logger.info("Mentora stopped")


def build_app(
    settings: Settings,
    ai: AICapability | None = None,
    persistence: PersistencePort | None = None,
    random_source: random.Random | None = None,
) -> MentoraApp:
    """Wire the application. Raises ConfigurationError without AI credentials."""
    ai = ai or LiteLLMCapability.from_settings(settings)
    persistence = persistence or SQLitePersistence(settings.db_path)

    cache = TTLCache(default_ttl=settings.cache_ttl_seconds)
    memory = TieredMemoryStore(
        persistence,
        cache,
        session_max_age=timedelta(hours=settings.session_max_age_hours),
    )
    orchestrator = ResponseOrchestrator(
        ai=ai,
        memory=memory,
        fallback=FallbackSelector(random_source=random_source),
        news=NewsService(),
    )

    return MentoraApp(
        settings=settings,
        persistence=persistence,
        cache=cache,
        memory=memory,
        orchestrator=orchestrator,
        scheduler=Scheduler(),
    )
