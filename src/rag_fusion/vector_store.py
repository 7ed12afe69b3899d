from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

import chromadb

from .schema import SOURCE_TYPES, ScoredResult


def build_chroma_collection(
    ids: Sequence[str],
    texts: Sequence[str],
    embeddings: Sequence[Sequence[float]],
    collection_name: str,
    persist_dir: str = "artifacts/chroma",
    metadatas: Sequence[dict[str, Any]] | None = None,
):
    """Create (or replace) a persistent cosine-space Chroma collection.

    Args:
        ids: Passage ids, unique within the collection.
        texts: Passage texts aligned to `ids`.
        embeddings: Embedding vectors aligned to `ids`.
        collection_name: Chroma collection name; doubles as the namespace.
        persist_dir: Local path for Chroma persistence.
        metadatas: Optional scalar-valued metadata per passage.

    Returns:
        The created Chroma collection instance.
    """
    Path(persist_dir).mkdir(parents=True, exist_ok=True)
    client = chromadb.PersistentClient(path=persist_dir)
    existing = {getattr(collection, "name", collection) for collection in client.list_collections()}
    if collection_name in existing:
        client.delete_collection(collection_name)

    collection = client.create_collection(name=collection_name, metadata={"hnsw:space": "cosine"})
    if ids:
        collection.add(
            ids=list(ids),
            embeddings=[list(vector) for vector in embeddings],
            documents=list(texts),
            metadatas=list(metadatas) if metadatas else None,
        )
    return collection


class ChromaVectorSearch:
    """Vector search provider over one Chroma collection per namespace."""

    def __init__(self, persist_dir: str = "artifacts/chroma"):
        self.client = chromadb.PersistentClient(path=persist_dir)

    def __call__(self, query_vector: Sequence[float], namespace: str, limit: int) -> list[ScoredResult]:
        """Return the `limit` nearest passages, most similar first.

        Args:
            query_vector: Embedded query.
            namespace: Collection to search.
            limit: Number of neighbours requested.

        Returns:
            Results with `similarity = 1 - cosine distance`; empty when the
            collection is empty.
        """
        collection = self.client.get_collection(namespace)
        count = collection.count()
        if count == 0 or limit <= 0:
            return []
        response = collection.query(query_embeddings=[list(query_vector)], n_results=min(limit, count))

        ids = response["ids"][0]
        docs = response["documents"][0]
        distances = response["distances"][0]
        metadatas = (response.get("metadatas") or [[None] * len(ids)])[0]
        source_type = namespace if namespace in SOURCE_TYPES else "knowledge_base"

        return [
            ScoredResult(
                id=result_id,
                content=text or "",
                similarity=float(1.0 - distance),
                source_type=source_type,
                metadata=dict(metadata or {}),
            )
            for result_id, text, distance, metadata in zip(ids, docs, distances, metadatas, strict=True)
        ]
