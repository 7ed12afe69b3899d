"""Tests for merging.py — folding sub-query result sets by id."""
from __future__ import annotations

import numpy as np
import pytest

from rag_fusion.merging import merge_results
from rag_fusion.schema import FusedResult, ScoredResult


def _make_result(result_id: str, score: float, **metadata) -> ScoredResult:
    return ScoredResult(id=result_id, content=f"text {result_id}", score=score, metadata=dict(metadata))


class TestMergeResults:
    @pytest.mark.parametrize("result_sets", [None, [], [[]], [[], None]])
    def test_empty_input(self, result_sets):
        assert merge_results(result_sets) == []

    def test_single_occurrence_passes_through(self):
        merged = merge_results([[_make_result("a", 0.4, title="A")]])
        assert merged[0].score == 0.4
        assert merged[0].metadata == {"title": "A"}
        assert merged[0].score_history["occurrences"] == 1

    def test_max_is_default(self):
        merged = merge_results([[_make_result("a", 0.4)], [_make_result("a", 0.7)]])
        assert merged[0].score == 0.7

    def test_average(self):
        merged = merge_results([[_make_result("a", 0.4)], [_make_result("a", 0.8)]], combine_method="average")
        assert merged[0].score == pytest.approx(0.6)

    def test_sum_is_clamped_to_one(self):
        sets = [[_make_result("a", 0.9)] for _ in range(10)]
        merged = merge_results(sets, combine_method="sum")
        assert merged[0].score == 1.0
        assert merged[0].score_history["individual_scores"] == [0.9] * 10

    def test_sum_below_one_is_exact(self):
        merged = merge_results([[_make_result("a", 0.2)], [_make_result("a", 0.3)]], combine_method="sum")
        assert merged[0].score == pytest.approx(0.5)

    def test_unknown_method_falls_back_to_max(self):
        merged = merge_results([[_make_result("a", 0.2)], [_make_result("a", 0.3)]], combine_method="median")
        assert merged[0].score == 0.3

    def test_keeps_first_occurrence_fields(self):
        merged = merge_results([[_make_result("a", 0.2, title="first")], [_make_result("a", 0.9, title="second")]])
        assert merged[0].metadata == {"title": "first"}

    def test_sorted_by_score(self):
        merged = merge_results(
            [[_make_result("a", 0.2), _make_result("b", 0.5)], [_make_result("c", 0.9), _make_result("a", 0.3)]]
        )
        assert [r.id for r in merged] == ["c", "b", "a"]

    def test_preserves_fused_result_type(self):
        fused = FusedResult(id="f", score=0.3, vector_rank=1, fusion_method="rrf")
        merged = merge_results([[fused], [FusedResult(id="f", score=0.2, bm25_rank=3)]])
        assert isinstance(merged[0], FusedResult)
        assert merged[0].vector_rank == 1

    def test_does_not_mutate_inputs(self):
        original = _make_result("a", 0.2)
        merge_results([[original], [_make_result("a", 0.9)]])
        assert original.score == 0.2
        assert original.score_history == {}

    @pytest.mark.parametrize("seed", range(20))
    def test_randomized_sum_never_exceeds_one(self, seed):
        rng = np.random.default_rng(seed)
        pool = [f"id{i}" for i in range(8)]
        sets = [
            [_make_result(str(i), float(rng.uniform(0.5, 1.0))) for i in rng.choice(pool, size=5, replace=False)]
            for _ in range(int(rng.integers(1, 12)))
        ]
        merged = merge_results(sets, combine_method="sum")
        assert all(0.0 <= r.score <= 1.0 for r in merged)
        assert len(merged) == len({r.id for result_set in sets for r in result_set})
