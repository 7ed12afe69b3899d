"""Ensemble balancing: per-query fusion weights for dense and sparse signals.

Weights start from the configured base pair, shift toward the retriever the
query shape favours, shift again toward the retriever whose scores look more
confident (higher mean) and consistent (lower variance), and are then
clamped to the configured bounds and renormalized to sum to one.
"""
from __future__ import annotations

import logging
from typing import Any, Sequence, TypeVar

from .normalization import analyze_scores
from .query_classifier import classify_query
from .schema import ScoredResult, Weights
from .settings import BalancingSettings, HybridSearchSettings

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")


class EnsembleBalancer:
    """Stateless adaptive weight calculator; safe to share across requests."""

    def __init__(
        self,
        settings: BalancingSettings | None = None,
        hybrid: HybridSearchSettings | None = None,
    ):
        self.settings = settings or BalancingSettings()
        self.hybrid = hybrid or HybridSearchSettings()

    def is_balancing_enabled(self) -> bool:
        return self.settings.enabled

    def fixed_weights(self) -> Weights:
        """Configured base weights, renormalized to sum to one."""
        total = self.hybrid.vector_weight + self.hybrid.bm25_weight
        if total <= 0:
            return Weights(vector=0.5, bm25=0.5)
        return Weights(vector=self.hybrid.vector_weight / total, bm25=self.hybrid.bm25_weight / total)

    def calculate_adaptive_weights(
        self,
        vector_results: Sequence[ScoredResult] | None,
        bm25_results: Sequence[ScoredResult] | None,
        query: str | None,
    ) -> Weights:
        """Compute fusion weights for one query and its two candidate sets.

        Args:
            vector_results: Dense retrieval candidates (may be empty).
            bm25_results: Keyword retrieval candidates (may be empty).
            query: The user query used for shape classification.

        Returns:
            Positive weights summing to 1.0, each derived from a value
            clamped to `[min_weight, max_weight]`.
        """
        policy = self.settings
        vector_stats = analyze_scores(vector_results)
        bm25_stats = analyze_scores(bm25_results)
        query_type = classify_query(query)

        vector_adjustment = 0.0
        if query_type == "keyword":
            vector_adjustment -= policy.query_type_shift
        elif query_type == "semantic":
            vector_adjustment += policy.query_type_shift

        distribution_adjustment = 0.0
        if vector_stats.mean > bm25_stats.mean:
            distribution_adjustment += policy.mean_shift
        elif bm25_stats.mean > vector_stats.mean:
            distribution_adjustment -= policy.mean_shift
        if vector_stats.variance < bm25_stats.variance:
            distribution_adjustment += policy.variance_shift
        elif bm25_stats.variance < vector_stats.variance:
            distribution_adjustment -= policy.variance_shift

        # distribution evidence must never outweigh the query-type shift
        cap = policy.mean_shift + policy.variance_shift
        if query_type != "mixed":
            cap = min(cap, policy.query_type_shift * 0.9)
        distribution_adjustment = max(-cap, min(cap, distribution_adjustment))
        vector_adjustment += distribution_adjustment

        vector_weight = self._clamp(self.hybrid.vector_weight + vector_adjustment)
        bm25_weight = self._clamp(self.hybrid.bm25_weight - vector_adjustment)
        total = vector_weight + bm25_weight
        weights = Weights(vector=vector_weight / total, bm25=bm25_weight / total)

        logger.debug(
            "Adaptive weights calculated: query_type=%s vector_mean=%.4f bm25_mean=%.4f "
            "adjustment=%.3f weights=(%.3f, %.3f)",
            query_type,
            vector_stats.mean,
            bm25_stats.mean,
            vector_adjustment,
            weights.vector,
            weights.bm25,
        )
        return weights

    def process_ensemble(
        self,
        results: Sequence[ResultT] | None,
        max_results: int,
        options: dict[str, Any] | None = None,
    ) -> list[ResultT]:
        """Cap a ranked result list at `max_results`, preserving order.

        The input sequence and its elements are left untouched.
        """
        if not results or max_results <= 0:
            return []
        limited = list(results[:max_results])
        logger.debug(
            "Ensemble processing complete: input=%d output=%d max_results=%d options=%s",
            len(results),
            len(limited),
            max_results,
            options or {},
        )
        return limited

    def _clamp(self, weight: float) -> float:
        return max(self.settings.min_weight, min(self.settings.max_weight, weight))
