"""Tests for message analysis."""

from mentora.memory.analysis import extract_topics, is_significant


def test_extract_topics_basic():
    assert extract_topics("o que é uma variável?") == ["variável"]


def test_extract_topics_drops_short_words_and_stopwords():
    topics = extract_topics("Como fazer um loop para listas em Python")
    assert topics == ["loop", "listas", "python"]


def test_extract_topics_dedupes_and_limits():
    topics = extract_topics("funções funções classes objetos módulos pacotes herança", limit=3)
    assert topics == ["funções", "classes", "objetos"]


def test_extract_topics_ignores_digits_and_punctuation():
    assert extract_topics("1234 !!! ??? --") == []


def test_is_significant_question():
    assert is_significant("o que é uma variável?")


def test_is_significant_learning_keyword():
    assert is_significant("quero aprender contabilidade básica")


def test_is_significant_rejects_short_or_plain():
    assert not is_significant("oi?")
    assert not is_significant("bom dia para todos vocês")
