"""Memory tier records and their JSON serialization."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

MAX_RECENT_MESSAGES = 10
MAX_SESSION_TOPICS = 5


class DifficultyLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


def _ts(value: datetime) -> str:
    return value.isoformat()


def _parse_ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class SessionMemory:
    """Short-term memory for one chat session."""

    session_id: str
    user_id: str
    recent_messages: list[str] = field(default_factory=list)  # newest last
    topics: list[str] = field(default_factory=list)  # ordered, unique
    last_interaction: datetime = field(default_factory=datetime.now)

    def add_message(self, text: str) -> None:
        self.recent_messages.append(text)
        if len(self.recent_messages) > MAX_RECENT_MESSAGES:
            self.recent_messages = self.recent_messages[-MAX_RECENT_MESSAGES:]

    def add_topic(self, topic: str) -> None:
        if topic in self.topics:
            return
        self.topics.append(topic)
        if len(self.topics) > MAX_SESSION_TOPICS:
            self.topics = self.topics[-MAX_SESSION_TOPICS:]

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "recent_messages": list(self.recent_messages),
            "topics": list(self.topics),
            "last_interaction": _ts(self.last_interaction),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionMemory":
        return cls(
            session_id=data["session_id"],
            user_id=data["user_id"],
            recent_messages=list(data.get("recent_messages", [])),
            topics=list(data.get("topics", [])),
            last_interaction=_parse_ts(data["last_interaction"]),
        )


@dataclass
class LearningProgress:
    """Per-domain learning state inside behavioral memory."""

    current_focus: list[str] = field(default_factory=list)
    difficulty_level: DifficultyLevel = DifficultyLevel.BEGINNER
    last_session_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_focus": list(self.current_focus),
            "difficulty_level": self.difficulty_level.value,
            "last_session_at": _ts(self.last_session_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LearningProgress":
        return cls(
            current_focus=list(data.get("current_focus", [])),
            difficulty_level=DifficultyLevel(data.get("difficulty_level", "beginner")),
            last_session_at=_parse_ts(data["last_session_at"]),
        )


@dataclass
class ProjectRecord:
    """A user project tracked across sessions."""

    id: str
    title: str
    domain: str
    status: ProjectStatus = ProjectStatus.ACTIVE
    key_points: list[str] = field(default_factory=list)
    description: str = ""
    last_activity: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "domain": self.domain,
            "status": self.status.value,
            "key_points": list(self.key_points),
            "description": self.description,
            "last_activity": _ts(self.last_activity),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectRecord":
        return cls(
            id=data["id"],
            title=data["title"],
            domain=data["domain"],
            status=ProjectStatus(data.get("status", "active")),
            key_points=list(data.get("key_points", [])),
            description=data.get("description", ""),
            last_activity=_parse_ts(data["last_activity"]),
        )


@dataclass
class ProjectDraft:
    """Fields supplied by the caller when adding a project."""

    title: str
    domain: str
    status: ProjectStatus = ProjectStatus.ACTIVE
    key_points: list[str] = field(default_factory=list)
    description: str = ""


@dataclass
class BehavioralMemory:
    """Medium-term memory: what the user keeps coming back to."""

    user_id: str
    topic_frequency: dict[str, int] = field(default_factory=dict)  # insertion order = first seen
    preferred_domains: dict[str, int] = field(default_factory=dict)
    learning_progress: dict[str, LearningProgress] = field(default_factory=dict)
    ongoing_projects: list[ProjectRecord] = field(default_factory=list)
    last_updated: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "topic_frequency": dict(self.topic_frequency),
            "preferred_domains": dict(self.preferred_domains),
            "learning_progress": {
                domain: progress.to_dict()
                for domain, progress in self.learning_progress.items()
            },
            "ongoing_projects": [p.to_dict() for p in self.ongoing_projects],
            "last_updated": _ts(self.last_updated),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BehavioralMemory":
        return cls(
            user_id=data["user_id"],
            topic_frequency={k: int(v) for k, v in data.get("topic_frequency", {}).items()},
            preferred_domains={k: int(v) for k, v in data.get("preferred_domains", {}).items()},
            learning_progress={
                domain: LearningProgress.from_dict(progress)
                for domain, progress in data.get("learning_progress", {}).items()
            },
            ongoing_projects=[ProjectRecord.from_dict(p) for p in data.get("ongoing_projects", [])],
            last_updated=_parse_ts(data["last_updated"]),
        )


@dataclass
class UserProfile:
    """How the user likes to be taught."""

    name: str = ""
    communication_style: str = "casual"  # formal, casual, technical
    learning_style: str = "mixed"  # visual, auditory, kinesthetic, mixed
    response_length: str = "detailed"  # brief, detailed, comprehensive


@dataclass
class UserPreferences:
    language: str = "pt-BR"
    notifications_enabled: bool = True
    memory_enabled: bool = True
    retention_days: int = 365


@dataclass
class ProfileMemory:
    """Long-term memory: the user's profile, preferences and goals."""

    user_id: str
    profile: UserProfile = field(default_factory=UserProfile)
    preferences: UserPreferences = field(default_factory=UserPreferences)
    interests: list[str] = field(default_factory=list)
    knowledge_level: dict[str, str] = field(default_factory=dict)  # domain -> level
    goals: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    last_updated: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Serialize profile to dictionary for JSON storage."""
        return {
            "user_id": self.user_id,
            "profile": {
                "name": self.profile.name,
                "communication_style": self.profile.communication_style,
                "learning_style": self.profile.learning_style,
                "response_length": self.profile.response_length,
            },
            "preferences": {
                "language": self.preferences.language,
                "notifications_enabled": self.preferences.notifications_enabled,
                "memory_enabled": self.preferences.memory_enabled,
                "retention_days": self.preferences.retention_days,
            },
            "interests": list(self.interests),
            "knowledge_level": dict(self.knowledge_level),
            "goals": list(self.goals),
            "created_at": _ts(self.created_at),
            "last_updated": _ts(self.last_updated),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProfileMemory":
        """Deserialize profile from dictionary."""
        return cls(
            user_id=data["user_id"],
            profile=UserProfile(**data.get("profile", {})),
            preferences=UserPreferences(**data.get("preferences", {})),
            interests=list(data.get("interests", [])),
            knowledge_level=dict(data.get("knowledge_level", {})),
            goals=list(data.get("goals", [])),
            created_at=_parse_ts(data["created_at"]),
            last_updated=_parse_ts(data["last_updated"]),
        )

    def add_interest(self, interest: str) -> None:
        """Add an interest if not already present."""
        if interest not in self.interests:
            self.interests.append(interest)
