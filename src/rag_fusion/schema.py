from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

SourceType = Literal["knowledge_base", "email", "web"]
QueryType = Literal["keyword", "semantic", "mixed"]
FusionMethod = Literal["rrf", "weighted"]

SOURCE_TYPES: tuple[str, ...] = ("knowledge_base", "email", "web")


@dataclass(slots=True)
class ScoredResult:
    """Candidate passage produced by a single retriever (dense or keyword).

    `score` and `similarity` are alternate score fields; producers fill
    whichever they have. `normalization` and `score_history` are
    diagnostic side channels and never feed ranking.
    """

    id: str
    content: str = ""
    score: float | None = None
    similarity: float | None = None
    source_type: SourceType = "knowledge_base"
    metadata: dict[str, Any] = field(default_factory=dict)
    normalized_score: float | None = None
    normalization: dict[str, Any] = field(default_factory=dict)
    score_history: dict[str, Any] = field(default_factory=dict)

    @property
    def effective_score(self) -> float:
        if self.score is not None:
            return float(self.score)
        if self.similarity is not None:
            return float(self.similarity)
        return 0.0


@dataclass(slots=True)
class FusedResult(ScoredResult):
    """Result of fusing the dense and keyword rankings.

    `score` holds the fused score for both fusion methods. Ranks are
    1-based positions in the respective input lists, `None` when absent.
    """

    vector_rank: int | None = None
    bm25_rank: int | None = None
    fusion_method: FusionMethod = "rrf"


@dataclass(slots=True)
class Weights:
    vector: float
    bm25: float


@dataclass(slots=True)
class ScoreStats:
    mean: float = 0.0
    variance: float = 0.0
    min: float = 0.0
    max: float = 0.0


@dataclass(slots=True)
class Chunk:
    """Token-bounded text segment ready for embedding."""

    text: str
    index: int
    total_chunks: int


@dataclass(slots=True)
class DocumentChunk(Chunk):
    """Chunk carrying the caller's document metadata verbatim."""

    metadata: dict[str, Any] = field(default_factory=dict)
