"""Tests for user input sanitization."""

import pytest

from mentora.core.errors import InvalidMessage
from mentora.core.types import HistoryTurn, Role
from mentora.safety.validation import (
    MAX_MESSAGE_LENGTH,
    sanitize_history,
    sanitize_text,
    validate_message,
)


def test_sanitize_strips_scripts_and_js_scheme():
    text = 'Olá <script type="text/javascript">steal()</script><a href="JavaScript:go()">aqui</a>'
    assert sanitize_text(text) == 'Olá <a href="go()">aqui</a>'


def test_sanitize_keeps_ordinary_text():
    assert sanitize_text("  o que é x < y?  ") == "o que é x < y?"


def test_long_text_capped_with_mark():
    text = sanitize_text("a" * (MAX_MESSAGE_LENGTH + 1))
    assert len(text) == MAX_MESSAGE_LENGTH
    assert text.endswith("...")
    assert sanitize_text("a" * MAX_MESSAGE_LENGTH) == "a" * MAX_MESSAGE_LENGTH


def test_validate_message():
    assert validate_message("  olá ") == "olá"
    with pytest.raises(InvalidMessage):
        validate_message(" ")


def test_sanitize_history_copies_turns():
    turns = [HistoryTurn(role=Role.MODEL, text=" resposta ")]
    cleaned = sanitize_history(turns)
    assert cleaned[0].text == "resposta"
    assert cleaned[0].role == Role.MODEL
    assert turns[0].text == " resposta "
