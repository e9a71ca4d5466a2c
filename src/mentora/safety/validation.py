"""User input sanitization and validation ahead of the AI call."""

import re
from dataclasses import replace

from pydantic import BaseModel, Field, ValidationError

from mentora.core.errors import InvalidMessage
from mentora.core.types import HistoryTurn

MAX_MESSAGE_LENGTH = 10_000
TRUNCATION_MARK = "..."

_SCRIPT_BLOCK = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_JS_SCHEME = re.compile(r"javascript:", re.IGNORECASE)


class UserMessage(BaseModel):
    """A chat message as accepted for the model."""

    text: str = Field(min_length=1, max_length=MAX_MESSAGE_LENGTH)


def sanitize_text(text: str, limit: int = MAX_MESSAGE_LENGTH) -> str:
    """Drop script blocks and javascript: schemes, trim, cap at limit characters."""
    text = _JS_SCHEME.sub("", _SCRIPT_BLOCK.sub("", text)).strip()
    if len(text) > limit:
        text = text[: limit - len(TRUNCATION_MARK)] + TRUNCATION_MARK
    return text


def validate_message(text: str) -> str:
    """Return the sanitized message. Raises InvalidMessage if nothing is left."""
    try:
        return UserMessage(text=sanitize_text(text)).text
    except ValidationError as e:
        raise InvalidMessage(
            f"Message must have 1-{MAX_MESSAGE_LENGTH} characters after sanitization"
        ) from e


def sanitize_history(history: list[HistoryTurn]) -> list[HistoryTurn]:
    return [replace(turn, text=sanitize_text(turn.text)) for turn in history]
