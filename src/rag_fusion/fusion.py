from __future__ import annotations

import logging
from typing import Sequence

from .errors import ConfigurationError
from .normalization import normalize_scores
from .schema import FusedResult, ScoredResult, Weights

logger = logging.getLogger(__name__)

DEFAULT_RRF_K = 60


def _first_ranks(results: Sequence[ScoredResult]) -> dict[str, int]:
    ranks: dict[str, int] = {}
    for rank, result in enumerate(results, start=1):
        ranks.setdefault(result.id, rank)
    return ranks


def _first_seen(
    vector_results: Sequence[ScoredResult], bm25_results: Sequence[ScoredResult]
) -> dict[str, ScoredResult]:
    """Map each distinct id to the first result supplying it, vector side first."""
    lookup: dict[str, ScoredResult] = {}
    for result in [*vector_results, *bm25_results]:
        lookup.setdefault(result.id, result)
    return lookup


def _fused_from(
    source: ScoredResult,
    score: float,
    vector_rank: int | None,
    bm25_rank: int | None,
    method: str,
    history: dict,
) -> FusedResult:
    return FusedResult(
        id=source.id,
        content=source.content,
        score=score,
        similarity=source.similarity,
        source_type=source.source_type,
        metadata=dict(source.metadata),
        normalized_score=source.normalized_score,
        normalization=dict(source.normalization),
        score_history=history,
        vector_rank=vector_rank,
        bm25_rank=bm25_rank,
        fusion_method=method,
    )


def reciprocal_rank_fusion(
    vector_results: Sequence[ScoredResult] | None,
    bm25_results: Sequence[ScoredResult] | None,
    k: int = DEFAULT_RRF_K,
) -> list[FusedResult]:
    """Fuse dense and keyword rankings via Reciprocal Rank Fusion (RRF).

    An id missing from one list gets no contribution from that side, so
    it stays eligible but scores below an id found in both.

    Args:
        vector_results: Ranked dense-retrieval results.
        bm25_results: Ranked keyword results.
        k: RRF smoothing constant controlling rank contribution decay.

    Returns:
        One fused result per distinct id, sorted by descending RRF score.
    """
    vector_results = list(vector_results or [])
    bm25_results = list(bm25_results or [])
    vector_ranks = _first_ranks(vector_results)
    bm25_ranks = _first_ranks(bm25_results)

    fused: list[FusedResult] = []
    for result_id, source in _first_seen(vector_results, bm25_results).items():
        vector_rank = vector_ranks.get(result_id)
        bm25_rank = bm25_ranks.get(result_id)
        rrf_score = (1 / (k + vector_rank) if vector_rank is not None else 0.0) + (
            1 / (k + bm25_rank) if bm25_rank is not None else 0.0
        )
        history = {"stage": "fusion", "method": "rrf", "k": k, "output": rrf_score}
        fused.append(_fused_from(source, rrf_score, vector_rank, bm25_rank, "rrf", history))

    fused.sort(key=lambda item: item.score, reverse=True)
    logger.debug(
        "RRF fusion completed: vector=%d bm25=%d fused=%d top=%s",
        len(vector_results),
        len(bm25_results),
        len(fused),
        fused[0].score if fused else None,
    )
    return fused


def weighted_fusion(
    vector_results: Sequence[ScoredResult] | None,
    bm25_results: Sequence[ScoredResult] | None,
    weights: Weights | None = None,
    normalization_method: str = "robust",
) -> list[FusedResult]:
    """Fuse normalized dense and keyword scores with a weighted sum.

    With `robust` normalization, dense similarities pass through unchanged
    (cosine similarity is already bounded) and BM25 scores go through
    z-score plus sigmoid to tame their unbounded range. Any other method
    is applied to both sides alike.

    Args:
        vector_results: Ranked dense-retrieval results.
        bm25_results: Ranked keyword results.
        weights: Fusion weights; defaults to an even split.
        normalization_method: `robust`, `min-max`, `z-score` or `none`.

    Returns:
        One fused result per distinct id, sorted by descending weighted score.
    """
    vector_results = list(vector_results or [])
    bm25_results = list(bm25_results or [])
    weights = weights or Weights(vector=0.5, bm25=0.5)

    if normalization_method == "robust":
        normalized_vector = normalize_scores(vector_results, "passthrough")
        normalized_bm25 = normalize_scores(bm25_results, "z-score")
    else:
        normalized_vector = normalize_scores(vector_results, normalization_method)
        normalized_bm25 = normalize_scores(bm25_results, normalization_method)

    vector_scores: dict[str, float] = {}
    for result in normalized_vector:
        vector_scores.setdefault(result.id, result.normalized_score or 0.0)
    bm25_scores: dict[str, float] = {}
    for result in normalized_bm25:
        bm25_scores.setdefault(result.id, result.normalized_score or 0.0)
    vector_ranks = _first_ranks(vector_results)
    bm25_ranks = _first_ranks(bm25_results)
    vector_originals = {result.id: result for result in reversed(vector_results)}
    bm25_originals = {result.id: result for result in reversed(bm25_results)}

    fused: list[FusedResult] = []
    for result_id, source in _first_seen(normalized_vector, normalized_bm25).items():
        vector_score = vector_scores.get(result_id, 0.0)
        bm25_score = bm25_scores.get(result_id, 0.0)
        final_score = vector_score * weights.vector + bm25_score * weights.bm25
        vector_original = vector_originals.get(result_id)
        bm25_original = bm25_originals.get(result_id)
        history = {
            "stage": "fusion",
            "method": "weighted",
            "inputs": {
                "vector": {
                    "original": vector_original.effective_score if vector_original else 0.0,
                    "normalized": vector_score,
                },
                "bm25": {
                    "original": bm25_original.effective_score if bm25_original else 0.0,
                    "normalized": bm25_score,
                },
            },
            "weights": {"vector": weights.vector, "bm25": weights.bm25},
            "output": final_score,
        }
        fused.append(
            _fused_from(
                source,
                final_score,
                vector_ranks.get(result_id),
                bm25_ranks.get(result_id),
                "weighted",
                history,
            )
        )

    fused.sort(key=lambda item: item.score, reverse=True)
    logger.debug(
        "Weighted fusion completed: vector=%d bm25=%d fused=%d weights=(%.3f, %.3f)",
        len(vector_results),
        len(bm25_results),
        len(fused),
        weights.vector,
        weights.bm25,
    )
    return fused


def fuse(
    vector_results: Sequence[ScoredResult] | None,
    bm25_results: Sequence[ScoredResult] | None,
    method: str = "weighted",
    weights: Weights | None = None,
    k: int = DEFAULT_RRF_K,
    normalization_method: str = "robust",
) -> list[FusedResult]:
    """Dispatch to the configured fusion strategy."""
    if method == "rrf":
        return reciprocal_rank_fusion(vector_results, bm25_results, k=k)
    if method == "weighted":
        return weighted_fusion(
            vector_results, bm25_results, weights=weights, normalization_method=normalization_method
        )
    raise ConfigurationError(f"unknown fusion method '{method}'")
