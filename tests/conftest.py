"""Shared pytest fixtures for rag_fusion unit tests."""
from __future__ import annotations

import pytest

from rag_fusion.schema import ScoredResult


def make_result(
    result_id: str,
    score: float | None = None,
    similarity: float | None = None,
    content: str = "",
    source_type: str = "knowledge_base",
    **metadata,
) -> ScoredResult:
    return ScoredResult(
        id=result_id,
        content=content or f"content of {result_id}",
        score=score,
        similarity=similarity,
        source_type=source_type,
        metadata=dict(metadata),
    )


@pytest.fixture()
def vector_results() -> list[ScoredResult]:
    return [
        make_result("a", score=0.9, similarity=0.9, title="Rotating API keys"),
        make_result("b", score=0.8, similarity=0.8, title="Authentication guide"),
    ]


@pytest.fixture()
def bm25_results() -> list[ScoredResult]:
    return [
        make_result("b", score=10.5, title="Authentication guide"),
        make_result("a", score=8.2, title="Rotating API keys"),
    ]


@pytest.fixture()
def corpus() -> list[ScoredResult]:
    return [
        make_result("kb-api", content="Rotate the API key every ninety days from the admin console."),
        make_result("kb-auth", content="User authentication uses OAuth tokens issued by the identity provider."),
        make_result("kb-vpn", content="Remote employees must connect through the corporate VPN."),
        make_result(
            "mail-1",
            content="Reminder: the API key for staging expires Friday, rotate the key today.",
            source_type="email",
        ),
    ]
