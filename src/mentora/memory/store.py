"""Tiered memory store: session, behavioral and profile memory.

Each tier reads cache-aside through the TTL cache and writes through to the
persistence port (persistence first, then cache). Read-modify-write operations
are serialized per record key.
"""

from collections.abc import Callable
from dataclasses import dataclass, fields, is_dataclass
from datetime import datetime, timedelta
from typing import Any, Generic, TypeVar
from uuid import uuid4

from mentora.core.errors import PersistenceFailure
from mentora.core.logging import get_logger
from mentora.core.types import Domain, domain_value
from mentora.memory.analysis import extract_topics, is_significant
from mentora.memory.cache import TTLCache
from mentora.memory.locks import KeyedLock
from mentora.memory.models import (
    BehavioralMemory,
    LearningProgress,
    ProfileMemory,
    ProjectDraft,
    ProjectRecord,
    ProjectStatus,
    SessionMemory,
)
from mentora.memory.persistence import PersistencePort

logger = get_logger("memory.store")

SESSION_MAX_AGE = timedelta(hours=24)

R = TypeVar("R")

Clock = Callable[[], datetime]


class _MemoryTier(Generic[R]):
    """Cache-aside / write-through plumbing shared by the three tiers."""

    tier_name = "memory"

    def __init__(
        self,
        persistence: PersistencePort,
        cache: TTLCache,
        locks: KeyedLock,
        ttl: float | None,
        clock: Clock,
    ):
        self._persistence = persistence
        self._cache = cache
        self._locks = locks
        self._ttl = ttl
        self._now = clock
        self._volatile: set[str] = set()  # cached keys never persisted

    def _decode(self, data: dict[str, Any]) -> R:
        raise NotImplementedError

    def _encode(self, record: R) -> dict[str, Any]:
        return record.to_dict()  # type: ignore[attr-defined]

    def is_stale(self, record: R, now: datetime) -> bool:
        """Whether a record has aged out. Only sessions expire."""
        return False

    async def _read(self, key: str) -> R | None:
        """Read and decode from persistence. Raises PersistenceFailure."""
        try:
            data = await self._persistence.get(key)
        except Exception as e:
            raise PersistenceFailure(f"Read failed for {key}: {e}", [key]) from e
        if data is None:
            return None
        try:
            return self._decode(data)
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceFailure(f"Malformed {self.tier_name} record at {key}: {e}", [key]) from e

    async def _fetch(self, key: str, factory: Callable[[], R]) -> tuple[R, bool]:
        """Load a record for modification.

        Returns (record, degraded). A degraded record was built while
        persistence could not be read and must never be persisted.
        """
        cached = self._cache.get(key)
        fresh = cached is not None and not self.is_stale(cached, self._now())
        if fresh and key not in self._volatile:
            return cached, False

        try:
            record = await self._read(key)
        except PersistenceFailure as e:
            if fresh:
                logger.warning(f"{e}; serving unpersisted {self.tier_name} record from cache")
                return cached, True
            logger.error(f"{e}; using an in-memory {self.tier_name} record")
            return factory(), True

        # Persistence is readable again: the stored record replaces any volatile copy
        self._volatile.discard(key)

        if record is not None and self.is_stale(record, self._now()):
            logger.info(f"Discarding expired {self.tier_name} memory: {key}")
            record = None

        if record is None:
            record = factory()
            await self._write(key, record)
        else:
            self._cache.set(key, record, self._ttl)
        return record, False

    async def _load(self, key: str, factory: Callable[[], R]) -> R:
        record, _ = await self._fetch(key, factory)
        return record

    async def _write(self, key: str, record: R, degraded: bool = False) -> None:
        """Persist then cache. A failed persist is logged and the cache still updated.

        Degraded records go to the cache only, marked volatile until a
        successful read replaces them.
        """
        if degraded:
            logger.warning(
                f"Not persisting {self.tier_name} memory {key}: built from a failed read; "
                f"keeping it in cache only, durability lost for this write"
            )
            self._volatile.add(key)
            self._cache.set(key, record, self._ttl)
            return

        try:
            await self._persistence.set(key, self._encode(record))
        except Exception as e:
            logger.warning(
                f"Failed to persist {self.tier_name} memory {key}; "
                f"keeping it in cache only, durability lost for this write: {e}"
            )
        self._cache.set(key, record, self._ttl)

    async def _remove(self, key: str) -> None:
        """Delete from persistence and evict. Raises PersistenceFailure."""
        self._cache.delete(key)
        self._volatile.discard(key)
        try:
            await self._persistence.delete(key)
        except Exception as e:
            raise PersistenceFailure(f"Delete failed for {key}: {e}", [key]) from e


class SessionTier(_MemoryTier[SessionMemory]):
    """Short-term memory, one record per (user, session)."""

    tier_name = "session"

    def __init__(self, *args: Any, max_age: timedelta = SESSION_MAX_AGE, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.max_age = max_age

    @staticmethod
    def user_prefix(user_id: str) -> str:
        return f"session:{user_id}:"

    @classmethod
    def key(cls, session_id: str, user_id: str) -> str:
        return f"{cls.user_prefix(user_id)}{session_id}"

    def _decode(self, data: dict[str, Any]) -> SessionMemory:
        return SessionMemory.from_dict(data)

    def is_stale(self, record: SessionMemory, now: datetime) -> bool:
        return now - record.last_interaction > self.max_age

    def _new(self, session_id: str, user_id: str) -> SessionMemory:
        return SessionMemory(session_id=session_id, user_id=user_id, last_interaction=self._now())

    async def get(self, session_id: str, user_id: str) -> SessionMemory:
        """Get session memory, starting a fresh one if absent or expired."""
        return await self._load(
            self.key(session_id, user_id), lambda: self._new(session_id, user_id)
        )

    async def save(self, memory: SessionMemory) -> None:
        key = self.key(memory.session_id, memory.user_id)
        await self._save(memory, key in self._volatile)

    async def _save(self, memory: SessionMemory, degraded: bool = False) -> None:
        memory.last_interaction = self._now()
        await self._write(self.key(memory.session_id, memory.user_id), memory, degraded)
        logger.debug(
            f"Session memory saved: {memory.session_id} "
            f"({len(memory.recent_messages)} messages, {len(memory.topics)} topics)"
        )

    async def append_context(
        self,
        session_id: str,
        user_id: str,
        text: str,
        topic: str | None = None,
    ) -> SessionMemory:
        """Append a message (and optional topic) keeping only the newest items."""
        key = self.key(session_id, user_id)
        async with self._locks.hold(key):
            memory, degraded = await self._fetch(key, lambda: self._new(session_id, user_id))
            memory.add_message(text)
            if topic:
                memory.add_topic(topic)
            await self._save(memory, degraded)
            return memory

    async def list_keys(self, user_id: str | None = None) -> list[str]:
        prefix = self.user_prefix(user_id) if user_id is not None else "session:"
        try:
            return await self._persistence.list_keys_with_prefix(prefix)
        except Exception as e:
            raise PersistenceFailure(f"Listing {prefix}* failed: {e}", [prefix]) from e

    async def delete_for_user(self, user_id: str) -> list[str]:
        """Delete every session row of a user. Returns keys that failed."""
        prefix = self.user_prefix(user_id)
        self._cache.delete_prefix(prefix)
        self._volatile = {key for key in self._volatile if not key.startswith(prefix)}

        try:
            keys = await self.list_keys(user_id)
        except PersistenceFailure as e:
            logger.error(str(e))
            return [prefix]

        failed: list[str] = []
        for key in keys:
            try:
                record = await self._read(key)
            except PersistenceFailure:
                record = None  # unreadable rows under the user's prefix are removed too
            if record is not None and record.user_id != user_id:
                continue
            try:
                await self._remove(key)
            except PersistenceFailure as e:
                logger.error(str(e))
                failed.append(key)
        return failed

    async def purge_expired(self) -> int:
        """Delete persisted sessions older than max_age. Returns the count removed."""
        now = self._now()
        removed = 0
        for key in await self.list_keys():
            try:
                record = await self._read(key)
            except PersistenceFailure as e:
                logger.warning(f"Skipping unreadable session during purge: {e}")
                continue
            if record is None or not self.is_stale(record, now):
                continue
            try:
                await self._remove(key)
                removed += 1
            except PersistenceFailure as e:
                logger.warning(str(e))

        if removed:
            logger.info(f"Purged {removed} expired session memories")
        return removed


class BehavioralTier(_MemoryTier[BehavioralMemory]):
    """Medium-term memory, one record per user."""

    tier_name = "behavioral"

    @staticmethod
    def key(user_id: str) -> str:
        return f"behavioral:{user_id}"

    def _decode(self, data: dict[str, Any]) -> BehavioralMemory:
        return BehavioralMemory.from_dict(data)

    def _new(self, user_id: str) -> BehavioralMemory:
        return BehavioralMemory(user_id=user_id, last_updated=self._now())

    async def get(self, user_id: str) -> BehavioralMemory:
        return await self._load(self.key(user_id), lambda: self._new(user_id))

    async def _checkout(self, user_id: str) -> tuple[BehavioralMemory, bool]:
        return await self._fetch(self.key(user_id), lambda: self._new(user_id))

    async def save(self, memory: BehavioralMemory) -> None:
        key = self.key(memory.user_id)
        await self._save(memory, key in self._volatile)

    async def _save(self, memory: BehavioralMemory, degraded: bool = False) -> None:
        memory.last_updated = self._now()
        await self._write(self.key(memory.user_id), memory, degraded)
        logger.debug(
            f"Behavioral memory saved: {memory.user_id} ({len(memory.topic_frequency)} topics)"
        )

    async def record_topics(
        self, user_id: str, topics: list[str], domain: Domain | str
    ) -> BehavioralMemory:
        """Count topics and make them the current focus for domain."""
        domain_id = domain_value(domain)
        async with self._locks.hold(self.key(user_id)):
            memory, degraded = await self._checkout(user_id)
            for topic in topics:
                memory.topic_frequency[topic] = memory.topic_frequency.get(topic, 0) + 1
            memory.preferred_domains[domain_id] = memory.preferred_domains.get(domain_id, 0) + 1

            now = self._now()
            progress = memory.learning_progress.get(domain_id)
            if progress is None:
                memory.learning_progress[domain_id] = LearningProgress(
                    current_focus=list(topics), last_session_at=now
                )
            else:
                progress.current_focus = list(topics)
                progress.last_session_at = now

            await self._save(memory, degraded)
            return memory

    async def record_topic(self, user_id: str, topic: str, domain: Domain | str) -> BehavioralMemory:
        return await self.record_topics(user_id, [topic], domain)

    async def add_project(self, user_id: str, draft: ProjectDraft) -> str:
        """Append a project with a fresh id. Returns the id."""
        async with self._locks.hold(self.key(user_id)):
            memory, degraded = await self._checkout(user_id)
            project = ProjectRecord(
                id=uuid4().hex,
                title=draft.title,
                domain=domain_value(draft.domain),
                status=draft.status,
                key_points=list(draft.key_points),
                description=draft.description,
                last_activity=self._now(),
            )
            memory.ongoing_projects.append(project)
            await self._save(memory, degraded)

        logger.info(f"Project added to memory: user={user_id} project={project.id}")
        return project.id

    async def update_project_status(
        self, user_id: str, project_id: str, status: ProjectStatus
    ) -> bool:
        """Change a project's status. Returns False if the project is unknown."""
        async with self._locks.hold(self.key(user_id)):
            memory, degraded = await self._checkout(user_id)
            for project in memory.ongoing_projects:
                if project.id == project_id:
                    project.status = status
                    project.last_activity = self._now()
                    await self._save(memory, degraded)
                    return True
        return False

    async def delete(self, user_id: str) -> None:
        await self._remove(self.key(user_id))


class ProfileTier(_MemoryTier[ProfileMemory]):
    """Long-term memory, one record per user."""

    tier_name = "profile"

    # Fields update() never touches
    _protected = frozenset({"user_id", "created_at", "last_updated"})

    @staticmethod
    def key(user_id: str) -> str:
        return f"profile:{user_id}"

    def _decode(self, data: dict[str, Any]) -> ProfileMemory:
        return ProfileMemory.from_dict(data)

    def _new(self, user_id: str, name: str = "") -> ProfileMemory:
        now = self._now()
        memory = ProfileMemory(user_id=user_id, created_at=now, last_updated=now)
        memory.profile.name = name
        return memory

    async def get(self, user_id: str) -> ProfileMemory:
        return await self._load(self.key(user_id), lambda: self._new(user_id))

    async def _checkout(self, user_id: str) -> tuple[ProfileMemory, bool]:
        return await self._fetch(self.key(user_id), lambda: self._new(user_id))

    async def save(self, memory: ProfileMemory) -> None:
        key = self.key(memory.user_id)
        await self._save(memory, key in self._volatile)

    async def _save(self, memory: ProfileMemory, degraded: bool = False) -> None:
        memory.last_updated = self._now()
        await self._write(self.key(memory.user_id), memory, degraded)
        logger.debug(f"Profile memory saved: {memory.user_id} ({len(memory.interests)} interests)")

    async def get_or_init(self, user_id: str, default_name: str) -> ProfileMemory:
        """Return the existing profile, creating it with default_name on first use.

        An existing profile is returned unchanged, except that an empty name
        (left by an implicit first read) is filled in once.
        """
        async with self._locks.hold(self.key(user_id)):
            memory, degraded = await self._checkout(user_id)
            if not memory.profile.name and default_name:
                memory.profile.name = default_name
                await self._save(memory, degraded)
                logger.info(f"Initialized profile memory for {user_id}")
            return memory

    async def update(self, user_id: str, partial: dict[str, Any]) -> ProfileMemory:
        """Shallow-merge fields into the profile and bump last_updated.

        Nested ``profile`` / ``preferences`` accept either a replacement object
        or a dict of fields to overwrite. Unknown fields are ignored.
        """
        async with self._locks.hold(self.key(user_id)):
            memory, degraded = await self._checkout(user_id)
            for name, value in partial.items():
                if name in self._protected or not hasattr(memory, name):
                    logger.debug(f"Ignoring profile update field: {name}")
                    continue
                current = getattr(memory, name)
                if is_dataclass(current) and isinstance(value, dict):
                    allowed = {f.name for f in fields(current)}
                    for sub_name, sub_value in value.items():
                        if sub_name in allowed:
                            setattr(current, sub_name, sub_value)
                else:
                    setattr(memory, name, value)
            await self._save(memory, degraded)
            return memory

    async def update_knowledge_level(
        self, user_id: str, domain: Domain | str, level: str
    ) -> ProfileMemory:
        async with self._locks.hold(self.key(user_id)):
            memory, degraded = await self._checkout(user_id)
            memory.knowledge_level[domain_value(domain)] = level
            await self._save(memory, degraded)

        logger.info(f"Knowledge level updated: user={user_id} domain={domain_value(domain)} level={level}")
        return memory

    async def add_interest(self, user_id: str, interest: str) -> ProfileMemory:
        async with self._locks.hold(self.key(user_id)):
            memory, degraded = await self._checkout(user_id)
            if interest not in memory.interests:
                memory.add_interest(interest)
                await self._save(memory, degraded)
            return memory

    async def delete(self, user_id: str) -> None:
        await self._remove(self.key(user_id))


@dataclass
class MemorySnapshot:
    """The three tiers as seen for one exchange."""

    session: SessionMemory
    behavioral: BehavioralMemory
    profile: ProfileMemory


@dataclass
class MemoryStats:
    session_count: int
    topic_count: int
    interest_count: int
    knowledge_domains: int
    project_count: int


class TieredMemoryStore:
    """Single entry point to the three memory tiers of every user."""

    def __init__(
        self,
        persistence: PersistencePort,
        cache: TTLCache,
        *,
        session_max_age: timedelta = SESSION_MAX_AGE,
        session_ttl: float | None = None,
        behavioral_ttl: float | None = None,
        profile_ttl: float | None = None,
        clock: Clock = datetime.now,
    ):
        self.persistence = persistence
        self.cache = cache
        self._locks = KeyedLock()

        self.sessions = SessionTier(
            persistence, cache, self._locks, session_ttl, clock, max_age=session_max_age
        )
        self.behavioral = BehavioralTier(persistence, cache, self._locks, behavioral_ttl, clock)
        self.profiles = ProfileTier(persistence, cache, self._locks, profile_ttl, clock)

    async def snapshot(self, session_id: str, user_id: str) -> MemorySnapshot:
        return MemorySnapshot(
            session=await self.sessions.get(session_id, user_id),
            behavioral=await self.behavioral.get(user_id),
            profile=await self.profiles.get(user_id),
        )

    async def analyze_message(
        self,
        session_id: str,
        user_id: str,
        message: str,
        domain: Domain | str,
    ) -> list[str]:
        """Fold a user message into session and behavioral memory.

        Every message joins the session context; only significant ones update
        topic statistics. Returns the topics recorded.
        """
        profile = await self.profiles.get(user_id)
        if not profile.preferences.memory_enabled:
            logger.debug(f"Memory disabled for {user_id}, skipping analysis")
            return []

        topics = extract_topics(message) if is_significant(message) else []
        await self.sessions.append_context(
            session_id, user_id, message, topics[0] if topics else None
        )
        if topics:
            await self.behavioral.record_topics(user_id, topics, domain)
            logger.debug(f"Recorded topics for {user_id}: {', '.join(topics)}")
        return topics

    async def clear_for_user(self, user_id: str) -> None:
        """Wipe all memory of a user: profile, behavioral and every session.

        Raises PersistenceFailure listing the keys that could not be deleted;
        everything else is deleted regardless.
        """
        failed: list[str] = []
        for tier in (self.behavioral, self.profiles):
            async with self._locks.hold(tier.key(user_id)):
                try:
                    await tier.delete(user_id)
                except PersistenceFailure as e:
                    logger.error(str(e))
                    failed.extend(e.keys)

        failed.extend(await self.sessions.delete_for_user(user_id))

        if failed:
            raise PersistenceFailure(
                f"Memory wipe for {user_id} incomplete: {', '.join(failed)}", failed
            )
        logger.info(f"User memory cleared: {user_id}")

    async def purge_expired_sessions(self) -> int:
        try:
            return await self.sessions.purge_expired()
        except PersistenceFailure as e:
            logger.error(f"Session purge failed: {e}")
            return 0

    async def export_user(self, user_id: str) -> dict[str, Any]:
        """All persisted memory of a user as plain JSON-compatible data."""
        sessions = []
        for key in await self.sessions.list_keys(user_id):
            record = await self.sessions._read(key)
            if record is not None:
                sessions.append(record.to_dict())

        return {
            "user_id": user_id,
            "exported_at": datetime.now().isoformat(),
            "profile": (await self.profiles.get(user_id)).to_dict(),
            "behavioral": (await self.behavioral.get(user_id)).to_dict(),
            "sessions": sessions,
        }

    async def stats(self, user_id: str) -> MemoryStats:
        try:
            session_count = len(await self.sessions.list_keys(user_id))
        except PersistenceFailure as e:
            logger.warning(str(e))
            session_count = 0

        behavioral = await self.behavioral.get(user_id)
        profile = await self.profiles.get(user_id)
        return MemoryStats(
            session_count=session_count,
            topic_count=len(behavioral.topic_frequency),
            interest_count=len(profile.interests),
            knowledge_domains=len(profile.knowledge_level),
            project_count=len(behavioral.ongoing_projects),
        )
