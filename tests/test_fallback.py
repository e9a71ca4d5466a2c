"""Tests for fallback and canned responses."""

import random
from pathlib import Path

import pytest

from mentora.core.types import Domain
from mentora.responses.fallback import DEFAULT_CATALOG_PATH, FallbackSelector, ResponseCatalog


@pytest.fixture
def catalog() -> ResponseCatalog:
    return ResponseCatalog.load()


def _split(text: str) -> tuple[str, str]:
    apology, body = text.split("\n\n", 1)
    return apology, body


def test_catalog_covers_every_domain(catalog: ResponseCatalog):
    for domain in Domain:
        assert len(catalog.fallbacks[domain.value]) >= 2
    assert catalog.apology_lines
    assert catalog.generic_fallbacks
    assert DEFAULT_CATALOG_PATH.exists()


def test_select_uses_domain_pool(catalog: ResponseCatalog):
    selector = FallbackSelector(random_source=random.Random(1), catalog=catalog)
    for _ in range(10):
        apology, body = _split(selector.select(Domain.ACCOUNTING, "quota"))
        assert apology in catalog.apology_lines
        assert body in catalog.fallbacks["accounting"]


def test_select_is_deterministic_with_seed(catalog: ResponseCatalog):
    first = FallbackSelector(random_source=random.Random(7), catalog=catalog)
    second = FallbackSelector(random_source=random.Random(7), catalog=catalog)
    assert [first.select("theology") for _ in range(5)] == [second.select("theology") for _ in range(5)]


def test_unknown_domain_uses_generic_pool(catalog: ResponseCatalog):
    selector = FallbackSelector(random_source=random.Random(3), catalog=catalog)
    _, body = _split(selector.select("astronomy"))
    assert body in catalog.generic_fallbacks


def test_empty_catalog_never_returns_empty():
    selector = FallbackSelector(catalog=ResponseCatalog())
    assert selector.select("programming").strip()
    assert selector.injection_refusal().strip()
    assert selector.reconnecting_line().strip()


def test_canned_responses(catalog: ResponseCatalog):
    selector = FallbackSelector(catalog=catalog)
    assert "Mentora" in selector.injection_refusal()
    assert "Google" in selector.auth_method_notice()
    assert selector.origin_story()
    assert selector.news_unavailable()
    assert selector.reconnecting_line() in catalog.reconnecting_lines


def test_catalog_from_custom_yaml(tmp_path: Path):
    path = tmp_path / "responses.yaml"
    path.write_text(
        "apology_lines: ['Desculpa!']\n"
        "fallbacks:\n"
        "  programming: ['Tenta de novo.']\n",
        encoding="utf-8",
    )
    selector = FallbackSelector(catalog=ResponseCatalog.load(path))
    assert selector.select("programming") == "Desculpa!\n\nTenta de novo."
