from __future__ import annotations

import logging
import math
from dataclasses import replace

import numpy as np
from rank_bm25 import BM25

from .schema import ScoredResult
from .settings import HybridSearchSettings
from .text import tokenize, word_tokens

logger = logging.getLogger(__name__)

_DEFAULTS = HybridSearchSettings()


def bm25_score(
    term_freq: float,
    doc_length: float,
    avg_doc_length: float,
    doc_count: int,
    docs_with_term: int,
    k1: float = _DEFAULTS.bm25_k1,
    b: float = _DEFAULTS.bm25_b,
) -> float:
    """Score one term against one document with corpus statistics.

    The idf term adds one inside the logarithm so it never goes negative,
    even for terms present in most documents.

    Args:
        term_freq: Occurrences of the term in the document.
        doc_length: Document length in tokens.
        avg_doc_length: Mean document length across the corpus.
        doc_count: Number of documents in the corpus.
        docs_with_term: Number of documents containing the term.
        k1: Term-frequency saturation.
        b: Length-normalization strength.

    Returns:
        Non-negative BM25 contribution; `0.0` when the term is absent.
    """
    if term_freq <= 0:
        return 0.0

    idf = math.log((doc_count - docs_with_term + 0.5) / (docs_with_term + 0.5) + 1)
    length_ratio = doc_length / avg_doc_length if avg_doc_length > 0 else 1.0
    tf_component = (term_freq * (k1 + 1)) / (term_freq + k1 * (1 - b + b * length_ratio))
    return idf * tf_component


class _CorpusBM25(BM25):
    """rank_bm25 corpus bookkeeping scored with `bm25_score`."""

    def __init__(self, corpus: list[list[str]], k1: float, b: float):
        self.k1 = k1
        self.b = b
        self.docs_with_term: dict[str, int] = {}
        super().__init__(corpus)

    def _calc_idf(self, nd):
        # idf is computed per call from document frequencies
        self.docs_with_term = nd

    def get_scores(self, query):
        scores = np.zeros(self.corpus_size)
        for term in query:
            docs_with_term = self.docs_with_term.get(term, 0)
            if not docs_with_term:
                continue
            for idx, frequencies in enumerate(self.doc_freqs):
                scores[idx] += bm25_score(
                    frequencies.get(term, 0),
                    self.doc_len[idx],
                    self.avgdl,
                    self.corpus_size,
                    docs_with_term,
                    self.k1,
                    self.b,
                )
        return scores


class Bm25Index:
    """In-memory keyword index over candidate passages."""

    def __init__(self, documents: list[ScoredResult], k1: float = _DEFAULTS.bm25_k1, b: float = _DEFAULTS.bm25_b):
        """Tokenize documents and collect corpus statistics.

        Args:
            documents: Passages to index; `id` and `content` are used.
            k1: Term-frequency saturation.
            b: Length-normalization strength.
        """
        self.documents = list(documents)
        corpus = [word_tokens(document.content) for document in self.documents]
        self._index = _CorpusBM25(corpus, k1=k1, b=b) if self.documents else None

    @property
    def doc_count(self) -> int:
        return len(self.documents)

    @property
    def avg_doc_length(self) -> float:
        return float(self._index.avgdl) if self._index is not None else 0.0

    def docs_with_term(self, term: str) -> int:
        if self._index is None:
            return 0
        return self._index.docs_with_term.get(term, 0)

    def search(self, query: str, top_k: int = 5) -> list[ScoredResult]:
        """Rank indexed passages for a query by summed BM25 term scores.

        Args:
            query: Free-text query; tokenized with stopword removal.
            top_k: Maximum number of results to return.

        Returns:
            Matching passages sorted by descending score; passages with
            no query term are left out.
        """
        terms = tokenize(query)
        if self._index is None or not terms or top_k <= 0:
            return []

        scores = self._index.get_scores(sorted(terms))
        ranked = sorted(range(len(scores)), key=lambda idx: scores[idx], reverse=True)
        results = [
            replace(self.documents[idx], score=float(scores[idx]), similarity=None)
            for idx in ranked
            if scores[idx] > 0
        ][:top_k]
        logger.debug("BM25 search returned %d of %d documents", len(results), self.doc_count)
        return results


class KeywordSearch:
    """Namespace-partitioned keyword search provider backed by `Bm25Index`."""

    def __init__(self, settings: HybridSearchSettings | None = None):
        """Hold per-namespace indexes built with the configured BM25 parameters.

        Args:
            settings: Source of `bm25_k1`/`bm25_b`; defaults when omitted.
        """
        self.settings = settings or HybridSearchSettings()
        self._indexes: dict[str, Bm25Index] = {}

    def index(self, namespace: str, documents: list[ScoredResult]) -> Bm25Index:
        """Build (or replace) the index for one namespace."""
        built = Bm25Index(documents, k1=self.settings.bm25_k1, b=self.settings.bm25_b)
        self._indexes[namespace] = built
        return built

    def __call__(self, query: str, namespace: str, limit: int) -> list[ScoredResult]:
        index = self._indexes.get(namespace)
        if index is None:
            return []
        return index.search(query, top_k=limit)
