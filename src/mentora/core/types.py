"""
Shared type definitions.

Core data structures used across modules.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Domain(str, Enum):
    """Tutoring domains with their own fallback pools."""

    PROGRAMMING = "programming"
    CONSULTING = "consulting"
    THEOLOGY = "theology"
    AGRICULTURE = "agriculture"
    ACCOUNTING = "accounting"
    PSYCHOLOGY = "psychology"


class Role(Enum):
    USER = "user"
    MODEL = "model"


@dataclass
class Attachment:
    """Inline file sent with a message (base64 content)."""

    mime_type: str
    content: str  # Base64 encoded
    name: str | None = None

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")


@dataclass
class HistoryTurn:
    """One prior turn of the conversation."""

    role: Role
    text: str
    attachment: Attachment | None = None

    def to_llm_format(self) -> dict[str, Any]:
        """Convert to OpenAI-style chat message.

        Model turns map to the "assistant" role. Image attachments become
        data-URL image blocks next to the text.
        """
        role = "assistant" if self.role == Role.MODEL else "user"

        if self.attachment is None or not self.attachment.is_image:
            return {"role": role, "content": self.text}

        blocks: list[dict[str, Any]] = [
            {
                "type": "image_url",
                "image_url": {
                    "url": f"data:{self.attachment.mime_type};base64,{self.attachment.content}"
                },
            }
        ]
        if self.text:
            blocks.append({"type": "text", "text": self.text})
        return {"role": role, "content": blocks}


def domain_value(domain: "Domain | str") -> str:
    """Normalize a Domain or plain string to its string value."""
    return domain.value if isinstance(domain, Domain) else str(domain)
