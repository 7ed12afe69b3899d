from __future__ import annotations

import math
from dataclasses import replace
from typing import Literal, Sequence

import numpy as np

from .schema import ScoredResult, ScoreStats

NormalizationMethod = Literal["min-max", "z-score", "none", "passthrough"]


def _sigmoid(value: float) -> float:
    if value >= 0:
        return 1.0 / (1.0 + math.exp(-value))
    exp_value = math.exp(value)
    return exp_value / (1.0 + exp_value)


def analyze_scores(results: Sequence[ScoredResult] | None) -> ScoreStats:
    """Describe the score distribution of a result set.

    Scores come from `score`, falling back to `similarity`, then 0.
    Variance is the population variance.

    Args:
        results: Result set to describe; may be empty or `None`.

    Returns:
        Mean, variance, min and max; all zero for empty input.
    """
    if not results:
        return ScoreStats()

    scores = np.asarray([result.effective_score for result in results], dtype=np.float64)
    return ScoreStats(
        mean=float(scores.mean()),
        variance=float(scores.var()),
        min=float(scores.min()),
        max=float(scores.max()),
    )


def normalize_scores(
    results: Sequence[ScoredResult] | None,
    method: NormalizationMethod | str = "min-max",
) -> list[ScoredResult]:
    """Rescale raw scores onto a comparable [0, 1] range.

    Returns copies of the inputs with `normalized_score` set and the
    method/parameters recorded in `normalization`. A single result, or a
    set whose scores are all identical, normalizes to 1.0 everywhere.

    Args:
        results: Scored results from one retriever.
        method: `min-max`, `z-score` (logistic squash of the z-value),
            `passthrough` (already-bounded similarity, clamped to [0, 1])
            or `none` (raw score).

    Returns:
        Normalized copies in input order.
    """
    if not results:
        return []

    if method == "passthrough":
        return [
            replace(
                result,
                normalized_score=min(max(_passthrough_value(result), 0.0), 1.0),
                normalization={"method": "passthrough", "reason": "cosine_similarity_already_normalized"},
            )
            for result in results
        ]

    if method not in ("min-max", "z-score"):
        return [
            replace(result, normalized_score=result.effective_score, normalization={"method": "none"})
            for result in results
        ]

    if len(results) == 1:
        return [replace(results[0], normalized_score=1.0, normalization={"method": method, "single_result": True})]

    scores = np.asarray([result.effective_score for result in results], dtype=np.float64)
    low = float(scores.min())
    high = float(scores.max())
    if high == low:
        return [
            replace(
                result,
                normalized_score=1.0,
                normalization={"method": method, "identical_scores": True, "original_score": result.effective_score},
            )
            for result in results
        ]

    if method == "min-max":
        spread = high - low
        return [
            replace(
                result,
                normalized_score=(result.effective_score - low) / spread,
                normalization={"method": method, "min": low, "max": high, "range": spread},
            )
            for result in results
        ]

    mean = float(scores.mean())
    std_dev = float(scores.std())
    if std_dev == 0.0:
        return [
            replace(
                result,
                normalized_score=1.0,
                normalization={"method": method, "identical_scores": True, "original_score": result.effective_score},
            )
            for result in results
        ]

    normalized: list[ScoredResult] = []
    for result in results:
        z_score = (result.effective_score - mean) / std_dev
        normalized.append(
            replace(
                result,
                normalized_score=_sigmoid(z_score),
                normalization={"method": method, "mean": mean, "std_dev": std_dev, "z_score": z_score},
            )
        )
    return normalized


def _passthrough_value(result: ScoredResult) -> float:
    # dense producers report cosine similarity; prefer it over a raw score
    if result.similarity is not None:
        return float(result.similarity)
    return result.effective_score
