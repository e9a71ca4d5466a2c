"""
Rule-based intent classifiers.

Each classifier is a pure predicate over the raw message. classify() applies
them in precedence order (injection, current events, auth method, origin) and
returns the first match. Keyword tables match whole words or phrases,
case-insensitively, in Portuguese and English.
"""

import re
from enum import Enum


class Intent(Enum):
    INJECTION_ATTEMPT = "injection_attempt"
    CURRENT_EVENTS = "current_events"
    AUTH_METHOD = "auth_method"
    ORIGIN = "origin"


CURRENT_EVENTS_KEYWORDS = [
    "notícias", "noticias", "notícia", "news", "headlines", "manchetes",
    "atualidades", "acontecimentos", "últimas notícias", "novidades do dia",
    "o que está acontecendo", "o que esta acontecendo", "what's happening",
    "whats happening", "current events", "current affairs",
    "moçambique", "mozambique", "maputo", "áfrica", "africa",
]

AUTH_METHOD_KEYWORDS = [
    "google", "github", "facebook", "oauth", "login social", "social login",
    "entrar com", "sign in with", "log in with", "login com",
]

ORIGIN_KEYWORDS = [
    "quem te criou", "quem te fez", "quem te desenvolveu", "quem criou",
    "quem desenvolveu", "teu criador", "seu criador", "criador", "criou",
    "desenvolveu", "fundador", "sua origem", "tua origem", "sua história",
    "who created you", "who made you", "who built you", "who developed you",
    "your creator", "your origin", "backstory",
]

INJECTION_PATTERNS = [
    # Impersonating the creator / owner
    r"\b(eu\s+)?sou\s+(o\s+|a\s+)?(criador|criadora|desenvolvedor|desenvolvedora|dono|dona|propriet[áa]rio|administrador)\b",
    r"\bi\s*('m|\s+am)\s+(your|the)\s+(creator|developer|owner|admin(istrator)?)\b",
    # Instruction override
    r"\bignor[ea]\s+(todas\s+)?(as\s+)?(suas|tuas|as)\s+instru[çc][õo]es\b",
    r"\besque[çc]a\s+(todas\s+)?(as\s+)?(suas\s+|tuas\s+)?instru[çc][õo]es\b",
    r"\bignore\s+(all\s+)?(of\s+)?(your|the|previous|prior|above)\s+(previous\s+|prior\s+)?(instructions|rules)\b",
    r"\bforget\s+(all\s+)?(your|previous|prior)\s+(instructions|rules)\b",
    r"\bmude\s+(o\s+)?(seu|teu)\s+comportamento\b",
    r"\bagora\s+voc[êe]\s+(é|e|deve)\b",
    r"\bnova\s+personalidade\b",
    r"\b(you\s+are\s+now|from\s+now\s+on\s+you\s+are)\b",
    # Jailbreaks
    r"\bjailbreak\b",
    r"\bdan\s+mode\b",
    r"\bdeveloper\s+mode\b",
    r"\bmodo\s+(desenvolvedor|programador|admin)\b",
    r"\badmin\s+mode\b",
    r"\bact\s+as\s+(an?\s+)?(unrestricted|unfiltered|evil)\b",
    # System prompt extraction
    r"\b(mostre|revele|diga|repita)\s+(as\s+)?(suas|tuas)\s+instru[çc][õo]es\b",
    r"\bprompt\s+(inicial|do\s+sistema)\b",
    r"\bsystem\s+prompt\b",
    r"\b(reveal|show|print|repeat)\s+(me\s+)?(your|the)\s+(instructions|prompt)\b",
    r"\bsistema\s+interno\b",
]


def _keyword_pattern(keywords: list[str]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(k) for k in sorted(keywords, key=len, reverse=True))
    return re.compile(rf"(?<!\w)(?:{alternatives})(?!\w)", re.IGNORECASE)


_CURRENT_EVENTS = _keyword_pattern(CURRENT_EVENTS_KEYWORDS)
_AUTH_METHOD = _keyword_pattern(AUTH_METHOD_KEYWORDS)
_ORIGIN = _keyword_pattern(ORIGIN_KEYWORDS)
_INJECTION = [re.compile(p, re.IGNORECASE) for p in INJECTION_PATTERNS]


def is_current_events_query(text: str) -> bool:
    return _CURRENT_EVENTS.search(text) is not None


def is_about_auth_method(text: str) -> bool:
    return _AUTH_METHOD.search(text) is not None


def is_about_origin(text: str) -> bool:
    return _ORIGIN.search(text) is not None


def is_injection_attempt(text: str) -> bool:
    return any(pattern.search(text) for pattern in _INJECTION)


# Precedence order: safety intents pre-empt everything else
CLASSIFIERS = [
    (Intent.INJECTION_ATTEMPT, is_injection_attempt),
    (Intent.CURRENT_EVENTS, is_current_events_query),
    (Intent.AUTH_METHOD, is_about_auth_method),
    (Intent.ORIGIN, is_about_origin),
]


def classify(text: str) -> Intent | None:
    """Return the first matching intent, or None for an ordinary message."""
    for intent, predicate in CLASSIFIERS:
        if predicate(text):
            return intent
    return None


NEWS_CATEGORIES = {
    "technology": ["tecnologia", "tech", "ia", "inteligência artificial", "programação", "technology"],
    "business": ["negócios", "economia", "empresas", "mercado", "business", "economy"],
    "education": ["educação", "ensino", "escola", "education"],
    "science": ["ciência", "sustentabilidade", "clima", "science"],
    "africa": ["moçambique", "mozambique", "maputo", "áfrica", "africa"],
}

_NEWS_CATEGORY_PATTERNS = {
    category: _keyword_pattern(keywords) for category, keywords in NEWS_CATEGORIES.items()
}


def extract_news_category(text: str) -> str | None:
    """Best-effort news category mentioned in a current-events question."""
    for category, pattern in _NEWS_CATEGORY_PATTERNS.items():
        if pattern.search(text):
            return category
    return None
