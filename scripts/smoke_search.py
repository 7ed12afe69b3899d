from rag_fusion.bm25 import KeywordSearch
from rag_fusion.chunking import Chunker
from rag_fusion.logging_utils import setup_logging
from rag_fusion.schema import ScoredResult
from rag_fusion.search import HybridSearcher
from rag_fusion.settings import load_settings

HANDBOOK = """Rotate the API key every ninety days from the admin console.
Expired keys are revoked automatically.

Remote employees must connect through the corporate VPN. Lost devices
must be reported to security within one hour.

OAuth tokens issued to integrations expire after one hour and are refreshed
with the stored refresh token."""


def main() -> None:
    """Chunk a small handbook, index it, and run a few hybrid searches."""
    setup_logging()
    settings = load_settings()
    chunks = Chunker(settings.chunking).chunk_document(HANDBOOK, {"doc_id": "handbook"})
    passages = [ScoredResult(id=f"chunk-{c.index}", content=c.text, metadata=dict(c.metadata)) for c in chunks]

    keyword_search = KeywordSearch(settings.hybrid)
    keyword_search.index("knowledge_base", passages)

    def vector_search(query_vector, namespace, limit):
        # stand-in for an embedding index: later chunks look more similar
        ranked = list(reversed(passages))[:limit]
        return [ScoredResult(id=p.id, content=p.content, similarity=0.9 - 0.1 * i) for i, p in enumerate(ranked)]

    searcher = HybridSearcher(vector_search=vector_search, keyword_search=keyword_search, settings=settings)
    for query in ["API key", "how do remote employees reach internal systems securely"]:
        results = searcher.search(query, "knowledge_base", limit=3, query_vector=[0.0])
        print(
            {
                "query": query,
                "chunks": len(chunks),
                "results": [(r.id, round(r.score or 0.0, 3), r.vector_rank, r.bm25_rank) for r in results],
            }
        )


if __name__ == "__main__":
    main()
