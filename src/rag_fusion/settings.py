from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from .errors import ConfigurationError

FUSION_METHODS = ("rrf", "weighted")
NORMALIZATION_METHODS = ("robust", "min-max", "z-score", "none")


@dataclass(slots=True)
class HybridSearchSettings:
    """BM25, fusion and fixed-weight configuration for hybrid search."""

    bm25_k1: float = 1.5
    bm25_b: float = 0.75
    rrf_k: int = 60
    vector_weight: float = 0.5
    bm25_weight: float = 0.5
    fusion_method: str = "weighted"
    normalization_method: str = "robust"
    top_k_per_method: int = 2


@dataclass(slots=True)
class BalancingSettings:
    """Adaptive weight policy. Shifts are absolute weight deltas."""

    enabled: bool = True
    min_weight: float = 0.3
    max_weight: float = 0.7
    query_type_shift: float = 0.1
    mean_shift: float = 0.05
    variance_shift: float = 0.03


@dataclass(slots=True)
class ChunkingSettings:
    max_tokens: int = 700
    overlap: int = 40
    chars_per_token: int = 4


@dataclass(slots=True)
class CacheSettings:
    ttl_seconds: float = 30.0
    max_entries: int = 200


@dataclass(slots=True)
class Settings:
    """Complete engine configuration passed explicitly to each component."""

    hybrid: HybridSearchSettings = field(default_factory=HybridSearchSettings)
    balancing: BalancingSettings = field(default_factory=BalancingSettings)
    chunking: ChunkingSettings = field(default_factory=ChunkingSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)

    def validate(self) -> "Settings":
        """Raise `ConfigurationError` for any malformed value.

        Returns:
            The same settings object, to allow chaining.
        """
        hybrid = self.hybrid
        if hybrid.bm25_k1 < 0 or not 0.0 <= hybrid.bm25_b <= 1.0:
            raise ConfigurationError(f"invalid BM25 parameters k1={hybrid.bm25_k1} b={hybrid.bm25_b}")
        if hybrid.rrf_k <= 0:
            raise ConfigurationError(f"rrf_k must be positive, got {hybrid.rrf_k}")
        for name in ("vector_weight", "bm25_weight"):
            value = getattr(hybrid, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must lie in [0, 1], got {value}")
        if hybrid.fusion_method not in FUSION_METHODS:
            raise ConfigurationError(f"unknown fusion method '{hybrid.fusion_method}'")
        if hybrid.normalization_method not in NORMALIZATION_METHODS:
            raise ConfigurationError(f"unknown normalization method '{hybrid.normalization_method}'")
        if hybrid.top_k_per_method < 1:
            raise ConfigurationError("top_k_per_method must be at least 1")

        balancing = self.balancing
        if not 0.0 < balancing.min_weight <= balancing.max_weight < 1.0:
            raise ConfigurationError(
                f"weight bounds must satisfy 0 < min <= max < 1, got "
                f"[{balancing.min_weight}, {balancing.max_weight}]"
            )

        validate_chunking(self.chunking.max_tokens, self.chunking.overlap, self.chunking.chars_per_token)

        if self.cache.ttl_seconds < 0 or self.cache.max_entries < 1:
            raise ConfigurationError(
                f"invalid cache settings ttl={self.cache.ttl_seconds} max_entries={self.cache.max_entries}"
            )
        return self


def validate_chunking(max_tokens: int, overlap: int, chars_per_token: int) -> None:
    if max_tokens <= 0:
        raise ConfigurationError(f"max_tokens must be positive, got {max_tokens}")
    if overlap < 0:
        raise ConfigurationError(f"overlap must not be negative, got {overlap}")
    if chars_per_token <= 0:
        raise ConfigurationError(f"chars_per_token must be positive, got {chars_per_token}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got '{raw}'") from exc


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_settings() -> Settings:
    """Load environment-backed settings and return a validated config object.

    Returns:
        Settings populated from `RAG_*` variables (and a `.env` file, when
        present), with defaults for anything unset.
    """
    load_dotenv()
    defaults = Settings()
    settings = Settings(
        hybrid=HybridSearchSettings(
            bm25_k1=_env_float("RAG_BM25_K1", defaults.hybrid.bm25_k1),
            bm25_b=_env_float("RAG_BM25_B", defaults.hybrid.bm25_b),
            rrf_k=_env_int("RAG_RRF_K", defaults.hybrid.rrf_k),
            vector_weight=_env_float("RAG_VECTOR_WEIGHT", defaults.hybrid.vector_weight),
            bm25_weight=_env_float("RAG_BM25_WEIGHT", defaults.hybrid.bm25_weight),
            fusion_method=os.getenv("RAG_FUSION_METHOD", defaults.hybrid.fusion_method),
            normalization_method=os.getenv("RAG_NORMALIZATION_METHOD", defaults.hybrid.normalization_method),
            top_k_per_method=_env_int("RAG_TOP_K_PER_METHOD", defaults.hybrid.top_k_per_method),
        ),
        balancing=BalancingSettings(
            enabled=_env_bool("RAG_BALANCING_ENABLED", defaults.balancing.enabled),
        ),
        chunking=ChunkingSettings(
            max_tokens=_env_int("RAG_CHUNK_MAX_TOKENS", defaults.chunking.max_tokens),
            overlap=_env_int("RAG_CHUNK_OVERLAP", defaults.chunking.overlap),
            chars_per_token=_env_int("RAG_CHARS_PER_TOKEN", defaults.chunking.chars_per_token),
        ),
        cache=CacheSettings(
            ttl_seconds=_env_float("RAG_CACHE_TTL_SECONDS", defaults.cache.ttl_seconds),
            max_entries=_env_int("RAG_CACHE_MAX_ENTRIES", defaults.cache.max_entries),
        ),
    )
    return settings.validate()
