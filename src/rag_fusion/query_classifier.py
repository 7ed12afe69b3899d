from __future__ import annotations

import re

from .schema import QueryType

KEYWORD_MAX_WORDS = 3
SEMANTIC_MIN_WORDS = 7

_INTERROGATIVE = re.compile(r"\b(how|what|why|when|where|who|which)\b", re.IGNORECASE)
_QUOTED_PHRASE = re.compile(r'"[^"]+"')


def classify_query(query: str | None) -> QueryType:
    """Classify a query by shape to steer dense versus sparse weighting.

    Short queries and quoted exact phrases are `keyword`; questions of seven
    or more words containing an interrogative are `semantic`; everything
    else is `mixed`.
    """
    trimmed = (query or "").strip()
    word_count = len(trimmed.split())

    if not trimmed or _QUOTED_PHRASE.search(trimmed) or word_count <= KEYWORD_MAX_WORDS:
        return "keyword"
    if word_count >= SEMANTIC_MIN_WORDS and _INTERROGATIVE.search(trimmed):
        return "semantic"
    return "mixed"
