"""Context synthesis: memory tiers -> personalized instruction sentences."""

import re

from mentora.core.types import Domain, domain_value
from mentora.memory.models import BehavioralMemory, ProfileMemory, ProjectStatus, SessionMemory

TOP_TOPICS = 3
RECENT_MESSAGES = 3
SESSION_CONTEXT_CHARS = 200
MAX_PROJECTS = 2

CONTEXT_HEADING = "## Personalized context"

_CONTROL = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WHITESPACE = re.compile(r"\s+")


def clean_text(text: str) -> str:
    """Strip control characters and collapse whitespace to single spaces."""
    return _WHITESPACE.sub(" ", _CONTROL.sub("", text)).strip()


def _sentence(text: str) -> str:
    text = clean_text(text)
    return text if text.endswith((".", "!", "?")) else f"{text}."


def top_topics(behavioral: BehavioralMemory, limit: int = TOP_TOPICS) -> list[str]:
    """Most frequent topics; equal counts keep first-seen order."""
    ranked = sorted(behavioral.topic_frequency.items(), key=lambda item: -item[1])
    return [topic for topic, _ in ranked[:limit]]


def synthesize(
    session: SessionMemory | None,
    behavioral: BehavioralMemory | None,
    profile: ProfileMemory | None,
    domain: Domain | str,
) -> str:
    """Render memory as advisory prose for the system instruction.

    Clauses appear in a fixed order and only when their source is non-empty:
    name, domain knowledge level, teaching style, frequent topics, session
    context, active projects in the domain. The result is a single line.
    """
    domain_id = domain_value(domain)
    parts: list[str] = []

    if profile is not None:
        if clean_text(profile.profile.name):
            parts.append(_sentence(f"The user's name is {profile.profile.name}"))

        level = profile.knowledge_level.get(domain_id)
        if level:
            parts.append(_sentence(f"Knowledge level in {domain_id}: {level}"))

        p = profile.profile
        parts.append(_sentence(
            f"Prefers a {p.communication_style} communication style, "
            f"{p.learning_style} learning style and {p.response_length} answers"
        ))

    if behavioral is not None:
        topics = [clean_text(t) for t in top_topics(behavioral)]
        if topics:
            parts.append(_sentence(f"Topics of frequent interest: {', '.join(topics)}"))

    if session is not None and session.recent_messages:
        recent = clean_text(" ".join(session.recent_messages[-RECENT_MESSAGES:]))
        recent = recent[:SESSION_CONTEXT_CHARS].rstrip()
        if recent:
            parts.append(_sentence(f"Session context: {recent}"))

    if behavioral is not None:
        titles = [
            clean_text(project.title)
            for project in behavioral.ongoing_projects
            if project.status == ProjectStatus.ACTIVE and project.domain == domain_id
        ][:MAX_PROJECTS]
        if titles:
            parts.append(_sentence(f"Ongoing projects: {', '.join(titles)}"))

    return " ".join(parts)


def build_system_instruction(template: str, context: str) -> str:
    """Append the personalized context block to the caller's instruction."""
    if not context:
        return template
    return f"{template.rstrip()}\n\n{CONTEXT_HEADING}\n{context}\nAdapt your answer to this user."
