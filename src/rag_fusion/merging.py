from __future__ import annotations

import logging
from dataclasses import replace
from typing import Literal, Sequence, TypeVar

from .schema import ScoredResult

logger = logging.getLogger(__name__)

CombineMethod = Literal["max", "average", "sum"]
ResultT = TypeVar("ResultT", bound=ScoredResult)


def merge_results(
    result_sets: Sequence[Sequence[ResultT] | None] | None,
    combine_method: CombineMethod | str = "max",
) -> list[ResultT]:
    """Fold result sets from several sub-queries into one deduplicated list.

    Args:
        result_sets: Ranked result lists, one per sub-query.
        combine_method: How duplicate scores combine: `max` (default),
            `average`, or `sum` clamped to [0, 1]. Unknown names fall
            back to `max`.

    Returns:
        One result per id, carrying the first occurrence's fields and the
        combined score, sorted by descending score.
    """
    grouped: dict[str, list[ResultT]] = {}
    total = 0
    for result_set in result_sets or []:
        for result in result_set or []:
            grouped.setdefault(result.id, []).append(result)
            total += 1

    if not grouped:
        return []

    merged: list[ResultT] = []
    for occurrences in grouped.values():
        first = occurrences[0]
        if len(occurrences) == 1:
            merged.append(
                replace(first, score_history={**first.score_history, "merge_method": "single", "occurrences": 1})
            )
            continue

        scores = [result.effective_score for result in occurrences]
        if combine_method == "average":
            final_score = sum(scores) / len(scores)
        elif combine_method == "sum":
            final_score = min(max(sum(scores), 0.0), 1.0)
        else:
            final_score = max(scores)

        merged.append(
            replace(
                first,
                score=final_score,
                score_history={
                    **first.score_history,
                    "merge_method": combine_method,
                    "occurrences": len(occurrences),
                    "individual_scores": scores,
                    "output": final_score,
                },
            )
        )

    merged.sort(key=lambda result: result.effective_score, reverse=True)
    logger.debug(
        "Results merged: sets=%d total=%d merged=%d method=%s",
        len(result_sets or []),
        total,
        len(merged),
        combine_method,
    )
    return merged
