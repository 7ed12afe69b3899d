"""Query-time orchestration of hybrid retrieval.

`HybridSearcher` fans out to a vector search provider and a keyword search
provider concurrently, chooses fusion weights, fuses the two candidate
lists, optionally hydrates content, caps the result count and caches the
response. The collaborators are plain callables:

    vector_search(query_vector, namespace, limit) -> list[ScoredResult]
    keyword_search(query, namespace, limit) -> list[ScoredResult]
    content_lookup(ids) -> dict[str, ScoredResult]
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Any, Callable, Sequence

from .balancing import EnsembleBalancer
from .cache import QueryResultCache, cache_key
from .chunking import Chunker
from .errors import ConfigurationError, UpstreamError
from .fusion import fuse
from .merging import merge_results
from .schema import DocumentChunk, FusedResult, ScoredResult, Weights
from .settings import Settings

logger = logging.getLogger(__name__)

VectorSearchFn = Callable[[Sequence[float], str, int], list[ScoredResult]]
KeywordSearchFn = Callable[[str, str, int], list[ScoredResult]]
ContentLookupFn = Callable[[list[str]], dict[str, ScoredResult]]


class HybridSearcher:
    """Hybrid dense + keyword search with adaptive fusion."""

    def __init__(
        self,
        vector_search: VectorSearchFn,
        keyword_search: KeywordSearchFn,
        settings: Settings | None = None,
        content_lookup: ContentLookupFn | None = None,
        source_weights: dict[str, float] | None = None,
        min_score: float | None = None,
        cache: QueryResultCache | None = None,
    ):
        """Wire collaborators and configuration.

        Args:
            vector_search: Dense retrieval provider.
            keyword_search: Keyword retrieval provider.
            settings: Engine configuration; validated here.
            content_lookup: Optional hydration of fused ids with content.
            source_weights: Optional score multiplier per source type.
            min_score: Optional floor applied after source weighting.
            cache: Result cache; one is created from `settings` if omitted.
        """
        self.settings = (settings or Settings()).validate()
        self.vector_search = vector_search
        self.keyword_search = keyword_search
        self.content_lookup = content_lookup
        self.source_weights = source_weights or {}
        self.min_score = min_score
        self.balancer = EnsembleBalancer(self.settings.balancing, self.settings.hybrid)
        self.chunker = Chunker(self.settings.chunking)
        self.cache = cache if cache is not None else QueryResultCache(self.settings.cache)

    def search(
        self,
        query: str,
        namespace: str,
        limit: int = 10,
        query_vector: Sequence[float] | None = None,
        fusion_method: str | None = None,
        weights: Weights | None = None,
    ) -> list[FusedResult]:
        """Run one hybrid search and return at most `limit` ranked results.

        Args:
            query: User query text.
            namespace: Index partition (knowledge base, twin, source type).
            limit: Maximum number of results.
            query_vector: Embedded query; without it the dense side is skipped.
            fusion_method: `rrf` or `weighted`; overrides the settings.
            weights: Fixed fusion weights; bypasses adaptive balancing.

        Returns:
            Fused results sorted by descending score.

        Raises:
            UpstreamError: A collaborator call failed.
            ConfigurationError: `limit` or `fusion_method` is invalid.
        """
        if limit < 0:
            raise ConfigurationError(f"limit must not be negative, got {limit}")
        hybrid = self.settings.hybrid
        method = fusion_method or hybrid.fusion_method

        key = cache_key(
            namespace,
            limit,
            query_vector,
            query=query,
            fusion_method=method,
            weights=[weights.vector, weights.bm25] if weights is not None else None,
        )
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for namespace=%s limit=%d", namespace, limit)
            return list(cached)

        candidate_limit = max(limit, 1) * hybrid.top_k_per_method
        vector_results, bm25_results = self._fetch_candidates(query, namespace, candidate_limit, query_vector)

        if weights is None:
            if self.balancer.is_balancing_enabled():
                weights = self.balancer.calculate_adaptive_weights(vector_results, bm25_results, query)
            else:
                weights = self.balancer.fixed_weights()

        fused = fuse(
            vector_results,
            bm25_results,
            method=method,
            weights=weights,
            k=hybrid.rrf_k,
            normalization_method=hybrid.normalization_method,
        )
        fused = self._hydrate(fused)
        fused = self._apply_source_weights(fused)
        results = self.balancer.process_ensemble(fused, limit, {"fusion_method": method})

        self.cache.set(key, tuple(results))
        logger.info(
            "Hybrid search namespace=%s method=%s vector=%d bm25=%d returned=%d",
            namespace,
            method,
            len(vector_results),
            len(bm25_results),
            len(results),
        )
        return results

    def search_many(
        self,
        queries: Sequence[str],
        namespace: str,
        limit: int = 10,
        query_vectors: Sequence[Sequence[float] | None] | None = None,
        combine_method: str = "max",
        **options: Any,
    ) -> list[FusedResult]:
        """Search several sub-queries and merge their results by id."""
        vectors = list(query_vectors) if query_vectors is not None else [None] * len(queries)
        if len(vectors) != len(queries):
            raise ConfigurationError("query_vectors must align with queries")
        result_sets = [
            self.search(query, namespace, limit=limit, query_vector=vector, **options)
            for query, vector in zip(queries, vectors)
        ]
        return merge_results(result_sets, combine_method=combine_method)[:limit]

    def chunk(
        self,
        document: str | None,
        metadata: dict[str, Any] | None = None,
        options: dict[str, int] | None = None,
    ) -> list[DocumentChunk]:
        """Chunk a document for ingestion; `options` may set max_tokens/overlap."""
        options = options or {}
        return self.chunker.chunk_document(
            document,
            metadata,
            max_tokens=options.get("max_tokens"),
            overlap=options.get("overlap"),
        )

    def _fetch_candidates(
        self,
        query: str,
        namespace: str,
        limit: int,
        query_vector: Sequence[float] | None,
    ) -> tuple[list[ScoredResult], list[ScoredResult]]:
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="hybrid-search") as pool:
            vector_future = (
                pool.submit(self.vector_search, query_vector, namespace, limit) if query_vector is not None else None
            )
            keyword_future = pool.submit(self.keyword_search, query, namespace, limit)

            vector_results: list[ScoredResult] = []
            if vector_future is not None:
                vector_results = self._collect("vector search", vector_future)
            bm25_results = self._collect("keyword search", keyword_future)
        return vector_results, bm25_results

    @staticmethod
    def _collect(collaborator: str, future) -> list[ScoredResult]:
        try:
            return list(future.result() or [])
        except Exception as exc:
            logger.error("%s failed: %s", collaborator, exc)
            raise UpstreamError(collaborator, str(exc)) from exc

    def _hydrate(self, results: list[FusedResult]) -> list[FusedResult]:
        if self.content_lookup is None or not results:
            return results
        try:
            found = self.content_lookup([result.id for result in results]) or {}
        except Exception as exc:
            logger.error("content lookup failed: %s", exc)
            raise UpstreamError("content lookup", str(exc)) from exc

        hydrated: list[FusedResult] = []
        for result in results:
            record = found.get(result.id)
            if record is None:
                hydrated.append(result)
                continue
            hydrated.append(
                replace(
                    result,
                    content=record.content or result.content,
                    source_type=record.source_type,
                    metadata={**result.metadata, **record.metadata},
                )
            )
        return hydrated

    def _apply_source_weights(self, results: list[FusedResult]) -> list[FusedResult]:
        if not self.source_weights and self.min_score is None:
            return results
        weighted = [
            replace(result, score=result.effective_score * self.source_weights.get(result.source_type, 1.0))
            for result in results
        ]
        if self.min_score is not None:
            weighted = [result for result in weighted if result.effective_score >= self.min_score]
        weighted.sort(key=lambda result: result.effective_score, reverse=True)
        return weighted
