"""Current-events provider.

Serves a small dated knowledge base of recent events. Answers questions the
model cannot, since its training data is frozen.
"""

import re
from dataclasses import dataclass
from datetime import date

from mentora.core.logging import get_logger
from mentora.memory.analysis import extract_topics

logger = get_logger("knowledge.news")

_WORD = re.compile(r"[^\W\d_]+")


@dataclass
class NewsItem:
    id: str
    title: str
    summary: str
    category: str  # technology, education, science, business, africa
    published: date
    source: str


DEFAULT_ITEMS = [
    NewsItem(
        id="tech-ai-2026",
        title="IA generativa no dia a dia",
        summary="Assistentes de IA estão integrados ao trabalho e ao estudo; programação assistida por IA virou padrão.",
        category="technology",
        published=date(2026, 1, 5),
        source="Mentora",
    ),
    NewsItem(
        id="edu-digital-2026",
        title="Educação digital",
        summary="Ensino híbrido é a norma e plataformas de IA personalizam o aprendizado de cada aluno.",
        category="education",
        published=date(2026, 1, 5),
        source="Mentora",
    ),
    NewsItem(
        id="prog-langs-2026",
        title="Linguagens de programação",
        summary="Python cresce em IA e dados, Rust ganha espaço em sistemas e WebAssembly chega ao mainstream.",
        category="technology",
        published=date(2026, 1, 5),
        source="Mentora",
    ),
    NewsItem(
        id="africa-tech-2026",
        title="África tecnológica",
        summary="Moçambique avança na transformação digital; startups e fintechs africanas lideram a inovação.",
        category="africa",
        published=date(2026, 1, 5),
        source="Mentora",
    ),
    NewsItem(
        id="science-green-2026",
        title="Sustentabilidade",
        summary="Energia renovável domina novos investimentos e a agricultura vertical cresce nas cidades.",
        category="science",
        published=date(2026, 1, 5),
        source="Mentora",
    ),
    NewsItem(
        id="business-remote-2026",
        title="Trabalho remoto",
        summary="O modelo híbrido é padrão e a colaboração global tornou-se rotina nas empresas.",
        category="business",
        published=date(2026, 1, 5),
        source="Mentora",
    ),
]


class NewsService:
    """In-process news knowledge base."""

    def __init__(self, items: list[NewsItem] | None = None):
        self._items: dict[str, NewsItem] = {}
        for item in items if items is not None else DEFAULT_ITEMS:
            self.add(item)
        logger.info(f"News knowledge base initialized with {len(self._items)} items")

    def add(self, item: NewsItem) -> None:
        """Add or replace an item by id."""
        self._items[item.id] = item

    async def get_current_news(self, category: str | None = None, limit: int = 5) -> list[NewsItem]:
        """Newest items first, optionally filtered by category."""
        items = [
            item for item in self._items.values()
            if category is None or item.category == category
        ]
        items.sort(key=lambda item: item.published, reverse=True)
        return items[:limit]

    async def search(self, query: str, limit: int = 3) -> list[NewsItem]:
        """Items whose title or summary contains a topic word of the query as a whole word."""
        words = set(extract_topics(query))
        if not words:
            return []
        matches = [
            item for item in self._items.values()
            if words & set(_WORD.findall(f"{item.title} {item.summary}".lower()))
        ]
        matches.sort(key=lambda item: item.published, reverse=True)
        return matches[:limit]

    @staticmethod
    def format_for_chat(items: list[NewsItem]) -> str:
        """Render items as a chat message."""
        if not items:
            return "Não encontrei notícias recentes sobre esse assunto. Quer perguntar sobre outra coisa?"

        lines = ["📰 **Notícias recentes**", ""]
        for item in items:
            lines.append(f"**{item.title}** ({item.published.isoformat()})")
            lines.append(item.summary)
            lines.append("")
        lines.append("Quer que eu explique algum desses temas com mais detalhe?")
        return "\n".join(lines)
