"""Tests for tracing.py — configure_tracing, get_tracer, traced_search, traced_chunking.

OTel spans are collected with InMemorySpanExporter so tests run fully offline.
"""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from rag_fusion.chunking import Chunker
from rag_fusion.schema import FusedResult
from rag_fusion.settings import ChunkingSettings
from rag_fusion.tracing import (
    ATTR_CHUNK_COUNT,
    ATTR_CHUNK_INPUT_LENGTH,
    ATTR_INPUT_VALUE,
    ATTR_NAMESPACE,
    ATTR_QUERY_TYPE,
    ATTR_RETRIEVAL_DOCUMENTS,
    configure_tracing,
    get_tracer,
    traced_chunking,
    traced_search,
)


@pytest.fixture()
def mem_exporter() -> InMemorySpanExporter:
    """Fresh InMemorySpanExporter and a configured TracerProvider."""
    exporter = InMemorySpanExporter()
    configure_tracing(exporter=exporter, service_name="test-service")
    return exporter


def _fake_search(query: str, namespace: str = "knowledge_base", limit: int = 3) -> list[FusedResult]:
    return [FusedResult(id=f"r{i}", score=1.0 - i * 0.1, vector_rank=i + 1) for i in range(limit)]


# ---------------------------------------------------------------------------
# configure_tracing / get_tracer
# ---------------------------------------------------------------------------

class TestConfigureTracing:
    def test_returns_provider(self):
        from opentelemetry.sdk.trace import TracerProvider

        provider = configure_tracing(exporter=InMemorySpanExporter())
        assert isinstance(provider, TracerProvider)

    def test_missing_otlp_package_raises_import_error(self, monkeypatch):
        import builtins

        real_import = builtins.__import__

        def mock_import(name, *args, **kwargs):
            if "otlp" in name:
                raise ImportError("mocked missing package")
            return real_import(name, *args, **kwargs)

        monkeypatch.setattr(builtins, "__import__", mock_import)
        with pytest.raises(ImportError, match="opentelemetry-exporter-otlp"):
            configure_tracing(endpoint="http://localhost:6006/v1/traces")

    def test_get_tracer_exposes_span_api(self, mem_exporter):
        assert hasattr(get_tracer("rag-fusion.test"), "start_as_current_span")


# ---------------------------------------------------------------------------
# traced_search
# ---------------------------------------------------------------------------

class TestTracedSearch:
    def test_returns_same_results(self, mem_exporter):
        wrapped = traced_search(_fake_search, get_tracer("search"))
        assert wrapped("API key", namespace="knowledge_base", limit=2) == _fake_search("API key", limit=2)

    def test_span_attributes(self, mem_exporter):
        wrapped = traced_search(_fake_search, get_tracer("search"))
        wrapped("API key", namespace="email", limit=2)
        span = mem_exporter.get_finished_spans()[-1]
        assert span.name == "search"
        assert span.attributes[ATTR_INPUT_VALUE] == "API key"
        assert span.attributes[ATTR_QUERY_TYPE] == "keyword"
        assert span.attributes[ATTR_NAMESPACE] == "email"
        assert span.attributes[ATTR_RETRIEVAL_DOCUMENTS] == 2
        assert span.status.status_code == trace.StatusCode.OK

    def test_error_status_and_reraise(self, mem_exporter):
        failing = MagicMock(side_effect=RuntimeError("index down"))
        wrapped = traced_search(failing, get_tracer("search"))
        with pytest.raises(RuntimeError, match="index down"):
            wrapped("API key")
        span = mem_exporter.get_finished_spans()[-1]
        assert span.status.status_code == trace.StatusCode.ERROR
        assert any(event.name == "exception" for event in span.events)


# ---------------------------------------------------------------------------
# traced_chunking
# ---------------------------------------------------------------------------

class TestTracedChunking:
    def test_records_input_length_and_chunk_count(self, mem_exporter):
        chunker = Chunker(ChunkingSettings(max_tokens=20, overlap=0))
        text = "\n\n".join(" ".join([word] * 10) for word in ["alpha", "bravo"])
        wrapped = traced_chunking(chunker.chunk_document, get_tracer("chunking"))
        chunks = wrapped(text, {"doc_id": "D-1"})
        span = mem_exporter.get_finished_spans()[-1]
        assert span.name == "chunking"
        assert span.attributes[ATTR_CHUNK_INPUT_LENGTH] == len(text)
        assert span.attributes[ATTR_CHUNK_COUNT] == len(chunks) == 2

    def test_empty_document(self, mem_exporter):
        wrapped = traced_chunking(Chunker().chunk_document, get_tracer("chunking"))
        assert wrapped(None) == []
        assert mem_exporter.get_finished_spans()[-1].attributes[ATTR_CHUNK_INPUT_LENGTH] == 0
