"""Lightweight message analysis feeding the memory tiers."""

import re

MIN_SIGNIFICANT_LENGTH = 10
MIN_TOPIC_LENGTH = 4
MAX_TOPICS_PER_MESSAGE = 5

STOPWORDS = frozenset({
    # Portuguese
    "para", "como", "onde", "quando", "porque", "qual", "quais", "quem",
    "isso", "isto", "esse", "essa", "este", "esta", "aqui", "mais", "muito",
    "pode", "sobre", "fazer", "tenho", "minha", "meu", "você", "voce",
    # English
    "what", "when", "where", "which", "that", "this", "with", "about",
    "have", "does", "from", "could", "would", "should", "there",
})

LEARNING_KEYWORDS = re.compile(
    r"\b(aprender|entender|explicar|explica|ajudar|ajuda|projeto|problema|"
    r"learn|understand|explain|help|project|problem)\b",
    re.IGNORECASE,
)

_WORD = re.compile(r"[^\W\d_]+(?:[-'][^\W\d_]+)*")


def extract_topics(message: str, limit: int = MAX_TOPICS_PER_MESSAGE) -> list[str]:
    """Pull candidate topic words out of a message.

    Lowercased words of at least four letters, punctuation stripped, stopwords
    dropped, first occurrence order kept.
    """
    topics: list[str] = []
    for word in _WORD.findall(message.lower()):
        if len(word) < MIN_TOPIC_LENGTH or word in STOPWORDS or word in topics:
            continue
        topics.append(word)
        if len(topics) == limit:
            break
    return topics


def is_significant(message: str) -> bool:
    """Decide whether a message is worth remembering.

    Long enough and either a question or explicitly about learning.
    """
    if len(message.strip()) < MIN_SIGNIFICANT_LENGTH:
        return False
    return "?" in message or LEARNING_KEYWORDS.search(message) is not None
