"""Token-level text similarity used by the text-match features."""

import re
from collections import Counter
from functools import lru_cache
from typing import Iterable, List, Set

from success_signal_ai.features.vocabulary import BUZZWORDS, STOP_WORDS

_EDGE_PUNCT = "\"'`.,;:!?()[]{}<>*|"

KEYWORD_LIMIT = 50
MIN_KEYWORD_LENGTH = 4


def tokenize(text: str) -> List[str]:
    """Whitespace tokens, case-folded, with edge punctuation stripped."""
    if not text:
        return []
    tokens = []
    for raw in text.casefold().split():
        token = raw.strip(_EDGE_PUNCT)
        if token:
            tokens.append(token)
    return tokens


def token_set(text: str) -> Set[str]:
    return set(tokenize(text))


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    set_a, set_b = set(a), set(b)
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def text_similarity(text_a: str, text_b: str) -> float:
    """Jaccard similarity of the two texts' token sets."""
    return jaccard(tokenize(text_a), tokenize(text_b))


@lru_cache(maxsize=512)
def _term_pattern(term: str) -> "re.Pattern[str]":
    return re.compile(rf"(?<![a-z0-9]){re.escape(term)}(?:s|es)?(?![a-z0-9])")


def contains_term(text: str, term: str) -> bool:
    """Whole-word (plural tolerant) match of a lowercase term in lowercase text."""
    return bool(text) and _term_pattern(term).search(text) is not None


def find_terms(text: str, vocabulary: Iterable[str]) -> List[str]:
    """Vocabulary terms present in text, in vocabulary order."""
    lowered = (text or "").lower()
    return [term for term in vocabulary if contains_term(lowered, term)]


def top_keywords(text: str, limit: int = KEYWORD_LIMIT) -> List[str]:
    """Most frequent words longer than 3 characters, stop words removed."""
    counts = Counter(
        t for t in tokenize(text)
        if len(t) >= MIN_KEYWORD_LENGTH and t not in STOP_WORDS and not t.isdigit()
    )
    return [word for word, _ in counts.most_common(limit)]


def keyword_density(job_text: str, resume_text: str) -> float:
    """Fraction of the job's top keywords that appear in the resume."""
    keywords = top_keywords(job_text)
    if not keywords:
        return 0.0
    resume_tokens = token_set(resume_text)
    return sum(1 for k in keywords if k in resume_tokens) / len(keywords)


def resume_relevance(resume_text: str, job_text: str) -> float:
    """Fraction of distinct resume words (longer than 3 characters) found in the job text."""
    resume_words = {t for t in tokenize(resume_text) if len(t) >= MIN_KEYWORD_LENGTH and t not in STOP_WORDS}
    if not resume_words:
        return 0.0
    job_tokens = token_set(job_text)
    return len(resume_words & job_tokens) / len(resume_words)


def buzzword_overlap(job_text: str, resume_text: str) -> float:
    """Share of the job's buzzwords also used in the resume; 0.5 if the job uses none."""
    job_buzz = find_terms(job_text, BUZZWORDS)
    if not job_buzz:
        return 0.5
    resume_buzz = set(find_terms(resume_text, BUZZWORDS))
    return sum(1 for b in job_buzz if b in resume_buzz) / len(job_buzz)
