"""Tests for settings.py — defaults, validation and env overrides."""
from __future__ import annotations

import pytest

from rag_fusion.errors import ConfigurationError
from rag_fusion.settings import (
    BalancingSettings,
    CacheSettings,
    ChunkingSettings,
    HybridSearchSettings,
    Settings,
    load_settings,
)

ENV_VARS = [
    "RAG_BM25_K1",
    "RAG_BM25_B",
    "RAG_RRF_K",
    "RAG_VECTOR_WEIGHT",
    "RAG_BM25_WEIGHT",
    "RAG_FUSION_METHOD",
    "RAG_NORMALIZATION_METHOD",
    "RAG_TOP_K_PER_METHOD",
    "RAG_BALANCING_ENABLED",
    "RAG_CHUNK_MAX_TOKENS",
    "RAG_CHUNK_OVERLAP",
    "RAG_CHARS_PER_TOKEN",
    "RAG_CACHE_TTL_SECONDS",
    "RAG_CACHE_MAX_ENTRIES",
]


@pytest.fixture()
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("rag_fusion.settings.load_dotenv", lambda: False)
    return monkeypatch


class TestDefaults:
    def test_hybrid_defaults(self):
        hybrid = HybridSearchSettings()
        assert hybrid.bm25_k1 == 1.5
        assert hybrid.bm25_b == 0.75
        assert hybrid.rrf_k == 60
        assert hybrid.vector_weight == 0.5
        assert hybrid.bm25_weight == 0.5

    def test_balancing_bounds(self):
        balancing = BalancingSettings()
        assert balancing.min_weight == 0.3
        assert balancing.max_weight == 0.7

    def test_chunking_defaults(self):
        chunking = ChunkingSettings()
        assert (chunking.max_tokens, chunking.overlap, chunking.chars_per_token) == (700, 40, 4)

    def test_default_settings_validate(self):
        settings = Settings()
        assert settings.validate() is settings


class TestValidate:
    @pytest.mark.parametrize(
        "settings",
        [
            Settings(chunking=ChunkingSettings(max_tokens=0)),
            Settings(chunking=ChunkingSettings(max_tokens=-5)),
            Settings(chunking=ChunkingSettings(overlap=-1)),
            Settings(chunking=ChunkingSettings(chars_per_token=0)),
            Settings(hybrid=HybridSearchSettings(rrf_k=0)),
            Settings(hybrid=HybridSearchSettings(vector_weight=1.5)),
            Settings(hybrid=HybridSearchSettings(fusion_method="borda")),
            Settings(hybrid=HybridSearchSettings(normalization_method="rank")),
            Settings(hybrid=HybridSearchSettings(bm25_b=2.0)),
            Settings(balancing=BalancingSettings(min_weight=0.8, max_weight=0.7)),
            Settings(balancing=BalancingSettings(min_weight=0.0)),
            Settings(cache=CacheSettings(max_entries=0)),
            Settings(cache=CacheSettings(ttl_seconds=-1)),
        ],
    )
    def test_rejects_malformed_values(self, settings):
        with pytest.raises(ConfigurationError):
            settings.validate()

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            Settings(chunking=ChunkingSettings(max_tokens=0)).validate()


class TestLoadSettings:
    def test_defaults_when_env_vars_absent(self, clean_env):
        settings = load_settings()
        assert settings.hybrid.fusion_method == "weighted"
        assert settings.chunking.max_tokens == 700
        assert settings.balancing.enabled is True

    def test_env_vars_override_defaults(self, clean_env):
        clean_env.setenv("RAG_RRF_K", "30")
        clean_env.setenv("RAG_FUSION_METHOD", "rrf")
        clean_env.setenv("RAG_CHUNK_MAX_TOKENS", "256")
        clean_env.setenv("RAG_BALANCING_ENABLED", "false")
        clean_env.setenv("RAG_CACHE_TTL_SECONDS", "5.5")
        settings = load_settings()
        assert settings.hybrid.rrf_k == 30
        assert settings.hybrid.fusion_method == "rrf"
        assert settings.chunking.max_tokens == 256
        assert settings.balancing.enabled is False
        assert settings.cache.ttl_seconds == 5.5

    def test_non_numeric_env_value_raises(self, clean_env):
        clean_env.setenv("RAG_BM25_K1", "high")
        with pytest.raises(ConfigurationError, match="RAG_BM25_K1"):
            load_settings()

    def test_invalid_env_value_fails_validation(self, clean_env):
        clean_env.setenv("RAG_CHUNK_MAX_TOKENS", "0")
        with pytest.raises(ConfigurationError):
            load_settings()
