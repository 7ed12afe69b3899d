from __future__ import annotations

import re

STOPWORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "by", "for", "from",
        "has", "he", "in", "is", "it", "its", "of", "on", "that", "the",
        "to", "was", "will", "with", "or", "but", "not", "have", "had",
        "over", "this", "can", "were", "been", "into", "would", "there",
    }
)
MIN_TOKEN_LENGTH = 3

_PUNCTUATION = re.compile(r"[^\w\s]")


def word_tokens(text: str | None) -> list[str]:
    """Lowercase, punctuation-free, stopword-filtered tokens in text order.

    Repeated words are kept so term frequencies can be counted.
    """
    if not text or not isinstance(text, str):
        return []
    cleaned = _PUNCTUATION.sub(" ", text.lower())
    return [
        token
        for token in cleaned.split()
        if len(token) >= MIN_TOKEN_LENGTH and token not in STOPWORDS
    ]


def tokenize(text: str | None) -> set[str]:
    """Normalize free text into the set of distinct keyword tokens.

    Args:
        text: Raw text; `None` or non-string input yields an empty set.

    Returns:
        Distinct lowercase tokens of at least three characters with
        punctuation and stopwords removed.
    """
    return set(word_tokens(text))
