import pytest

from success_signal_ai.features.text_similarity import (
    buzzword_overlap,
    contains_term,
    find_terms,
    jaccard,
    keyword_density,
    resume_relevance,
    text_similarity,
    tokenize,
    top_keywords,
)


def test_tokenize_strips_edge_punctuation():
    assert tokenize("Hello, World! (Python)") == ["hello", "world", "python"]
    assert tokenize("") == []


def test_jaccard():
    assert jaccard({"a", "b"}, {"b", "c"}) == pytest.approx(1 / 3)
    assert jaccard([], []) == 0.0
    assert text_similarity("Senior Backend Engineer", "Backend Engineer") == pytest.approx(2 / 3)


@pytest.mark.parametrize(
    "text, term, expected",
    [
        ("java developer", "java", True),
        ("javascript developer", "java", False),
        ("rest apis", "api", True),
        ("c-level role", "c-level", True),
        ("docker/kubernetes", "docker", True),
        ("", "java", False),
    ],
)
def test_contains_term(text, term, expected):
    assert contains_term(text, term) is expected


def test_find_terms_in_vocabulary_order():
    assert find_terms("SQL and Python", ["python", "sql", "go"]) == ["python", "sql"]


def test_top_keywords_skips_short_and_stop_words():
    keywords = top_keywords("python python django with your team team team 2024")
    assert keywords == ["team", "python", "django"]


def test_keyword_density():
    assert keyword_density("python django postgres", "I write python and django") == pytest.approx(2 / 3)
    assert keyword_density("a an to", "anything") == 0.0


def test_resume_relevance():
    assert resume_relevance("python django cooking", "We use python and django") == pytest.approx(2 / 3)
    assert resume_relevance("", "python") == 0.0


def test_buzzword_overlap():
    assert buzzword_overlap("Agile team building scalable microservices", "agile scrum") == pytest.approx(1 / 3)
    assert buzzword_overlap("Plain description", "agile") == 0.5
