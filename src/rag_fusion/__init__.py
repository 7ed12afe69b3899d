"""Retrieval fusion and chunking engine for hybrid RAG search."""

from .balancing import EnsembleBalancer
from .chunking import Chunker
from .errors import ConfigurationError, RagFusionError, UpstreamError
from .fusion import fuse, reciprocal_rank_fusion, weighted_fusion
from .merging import merge_results
from .schema import Chunk, DocumentChunk, FusedResult, ScoredResult, ScoreStats, Weights
from .search import HybridSearcher
from .settings import Settings, load_settings

__all__ = [
    "Chunk",
    "Chunker",
    "ConfigurationError",
    "DocumentChunk",
    "EnsembleBalancer",
    "FusedResult",
    "HybridSearcher",
    "RagFusionError",
    "ScoreStats",
    "ScoredResult",
    "Settings",
    "UpstreamError",
    "Weights",
    "fuse",
    "load_settings",
    "merge_results",
    "reciprocal_rank_fusion",
    "weighted_fusion",
]
