"""Fallback and canned responses.

FallbackSelector is the last line of defense when the AI capability fails:
select() never raises and always returns a non-empty string.
"""

import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from mentora.core.logging import get_logger
from mentora.core.types import Domain, domain_value

logger = get_logger("responses.fallback")

DEFAULT_CATALOG_PATH = Path(__file__).parent.parent / "configs" / "responses.yaml"

# Used when the catalog has nothing usable for a slot
_BUILTIN_APOLOGY = "Ops, tive um probleminha técnico!"
_BUILTIN_FALLBACK = "Não consegui responder agora. Tenta de novo em alguns segundos?"


@dataclass
class ResponseCatalog:
    """Response pools and canned texts loaded from YAML."""

    fallbacks: dict[str, list[str]] = field(default_factory=dict)
    generic_fallbacks: list[str] = field(default_factory=list)
    apology_lines: list[str] = field(default_factory=list)
    reconnecting_lines: list[str] = field(default_factory=list)
    canned: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResponseCatalog":
        return cls(
            fallbacks={
                str(domain): [t for t in templates if t]
                for domain, templates in (data.get("fallbacks") or {}).items()
            },
            generic_fallbacks=[t for t in data.get("generic_fallbacks") or [] if t],
            apology_lines=[t for t in data.get("apology_lines") or [] if t],
            reconnecting_lines=[t for t in data.get("reconnecting_lines") or [] if t],
            canned={k: v for k, v in (data.get("canned") or {}).items() if v},
        )

    @classmethod
    def load(cls, path: Path | str = DEFAULT_CATALOG_PATH) -> "ResponseCatalog":
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        catalog = cls.from_dict(data)
        logger.info(
            f"Loaded response catalog: {len(catalog.fallbacks)} domains, "
            f"{len(catalog.apology_lines)} apology lines"
        )
        return catalog


class FallbackSelector:
    """Chooses fallback text per domain with an injectable random source."""

    def __init__(
        self,
        random_source: random.Random | None = None,
        catalog: ResponseCatalog | None = None,
    ):
        self._random = random_source or random.Random()
        self.catalog = catalog or ResponseCatalog.load()

    def _choice(self, pool: list[str], default: str) -> str:
        return self._random.choice(pool) if pool else default

    def select(self, domain: Domain | str | None, reason: str = "unknown") -> str:
        """Return a domain-flavored fallback prefixed with an apology line."""
        try:
            domain_id = domain_value(domain) if domain is not None else ""
            logger.warning(f"Using fallback response (domain={domain_id or '-'}, reason={reason})")

            pool = self.catalog.fallbacks.get(domain_id) or self.catalog.generic_fallbacks
            body = self._choice(pool, _BUILTIN_FALLBACK)
            apology = self._choice(self.catalog.apology_lines, _BUILTIN_APOLOGY)
            return f"{apology}\n\n{body}"
        except Exception as e:
            logger.error(f"Fallback selection failed, using built-in text: {e}")
            return f"{_BUILTIN_APOLOGY}\n\n{_BUILTIN_FALLBACK}"

    def _canned(self, name: str) -> str:
        text = self.catalog.canned.get(name)
        if not text:
            logger.warning(f"Canned response '{name}' missing from catalog")
            return _BUILTIN_FALLBACK
        return text

    def injection_refusal(self) -> str:
        return self._canned("injection_refusal")

    def auth_method_notice(self) -> str:
        return self._canned("auth_method")

    def origin_story(self) -> str:
        return self._canned("origin")

    def news_unavailable(self) -> str:
        return self._canned("news_unavailable")

    def reconnecting_line(self) -> str:
        return self._choice(self.catalog.reconnecting_lines, "Reconectando...")
