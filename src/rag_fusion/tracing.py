"""OpenTelemetry tracing helpers for hybrid search and chunking.

Usage with an OTLP backend (e.g. Arize Phoenix):

    from rag_fusion.tracing import configure_tracing, get_tracer, traced_search

    configure_tracing(endpoint="http://localhost:6006/v1/traces", service_name="rag-fusion")
    search = traced_search(searcher.search, get_tracer("rag-fusion.search"))
    results = search("API key rotation", namespace="knowledge_base", limit=5)

Without an endpoint spans are printed to stdout; tests inject an
``InMemorySpanExporter``.
"""
from __future__ import annotations

from typing import Callable

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor, SpanExporter

from .query_classifier import classify_query
from .schema import DocumentChunk, FusedResult

ATTR_INPUT_VALUE = "input.value"
ATTR_RETRIEVAL_DOCUMENTS = "retrieval.documents"
ATTR_QUERY_TYPE = "retrieval.query_type"
ATTR_NAMESPACE = "retrieval.namespace"
ATTR_CHUNK_INPUT_LENGTH = "chunking.input_length"
ATTR_CHUNK_COUNT = "chunking.chunk_count"

_provider: TracerProvider | None = None


def configure_tracing(
    endpoint: str | None = None,
    service_name: str = "rag-fusion",
    exporter: SpanExporter | None = None,
) -> TracerProvider:
    """Create and register a global TracerProvider.

    Args:
        endpoint: OTLP HTTP endpoint URL. Ignored when `exporter` is given;
            when both are absent spans go to the console.
        service_name: Service label shown in the observability backend.
        exporter: Pre-built span exporter, e.g. ``InMemorySpanExporter``.

    Returns:
        The configured provider, also set as the global OTel provider.
    """
    global _provider

    provider = TracerProvider(resource=Resource(attributes={SERVICE_NAME: service_name}))

    if exporter is not None:
        chosen_exporter: SpanExporter = exporter
    elif endpoint is not None:
        try:
            from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        except ImportError as exc:  # pragma: no cover
            raise ImportError(
                "opentelemetry-exporter-otlp-proto-http is required to export "
                "traces to an OTLP endpoint. Install the 'otlp' extra."
            ) from exc
        chosen_exporter = OTLPSpanExporter(endpoint=endpoint)
    else:
        chosen_exporter = ConsoleSpanExporter()

    provider.add_span_processor(SimpleSpanProcessor(chosen_exporter))
    trace.set_tracer_provider(provider)
    _provider = provider
    return provider


def get_tracer(name: str) -> trace.Tracer:
    """Return a tracer from the configured provider, or the global no-op one."""
    if _provider is not None:
        return _provider.get_tracer(name)
    return trace.get_tracer(name)


def traced_search(
    search_fn: Callable[..., list[FusedResult]],
    tracer: trace.Tracer,
) -> Callable[..., list[FusedResult]]:
    """Wrap a search callable so every call is recorded as a ``"search"`` span.

    The span records the query, its classified type, the namespace (when
    passed by keyword), the result count, and OK/ERROR status.
    """

    def _wrapped(query: str, *args, **kwargs) -> list[FusedResult]:
        with tracer.start_as_current_span("search") as span:
            span.set_attribute(ATTR_INPUT_VALUE, query)
            span.set_attribute(ATTR_QUERY_TYPE, classify_query(query))
            if "namespace" in kwargs:
                span.set_attribute(ATTR_NAMESPACE, kwargs["namespace"])
            try:
                results = search_fn(query, *args, **kwargs)
            except Exception as exc:
                span.set_status(trace.StatusCode.ERROR, str(exc))
                span.record_exception(exc)
                raise
            span.set_attribute(ATTR_RETRIEVAL_DOCUMENTS, len(results))
            span.set_status(trace.StatusCode.OK)
            return results

    return _wrapped


def traced_chunking(
    chunk_fn: Callable[..., list[DocumentChunk]],
    tracer: trace.Tracer,
) -> Callable[..., list[DocumentChunk]]:
    """Wrap a chunking callable in a ``"chunking"`` span."""

    def _wrapped(document: str | None, *args, **kwargs) -> list[DocumentChunk]:
        with tracer.start_as_current_span("chunking") as span:
            span.set_attribute(ATTR_CHUNK_INPUT_LENGTH, len(document or ""))
            try:
                chunks = chunk_fn(document, *args, **kwargs)
            except Exception as exc:
                span.set_status(trace.StatusCode.ERROR, str(exc))
                span.record_exception(exc)
                raise
            span.set_attribute(ATTR_CHUNK_COUNT, len(chunks))
            span.set_status(trace.StatusCode.OK)
            return chunks

    return _wrapped
