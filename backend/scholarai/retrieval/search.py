"""Retrieval orchestration: scope resolution, fairness capping, ranking."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Iterable, Sequence

from scholarai.core.errors import NoDocumentsInScope, ServiceFailure
from scholarai.core.logging import get_logger
from scholarai.ingest.embeddings import EmbeddingService, embed_in_batches
from scholarai.models.entities import Chunk, Document, RetrievalItem, RetrievalResult
from scholarai.retrieval.similarity import cosine

logger = get_logger(__name__)


@dataclass(slots=True)
class ScopePack:
    document: Document
    chunks: tuple[Chunk, ...]


def resolve_scope(documents: Sequence[Document], doc_ids: Iterable[str] | None = None) -> list[Document]:
    """Documents named by ``doc_ids``, or every document when none are given."""
    wanted = set(doc_ids or ())
    scope = [doc for doc in documents if doc.id in wanted] if wanted else list(documents)
    if not scope:
        raise NoDocumentsInScope()
    return scope


def limit_scope_chunks(scope: Sequence[Document], cap: int = 800) -> tuple[list[ScopePack], bool]:
    """Apply the per-document fairness cap.

    Under the cap every chunk is kept. Over it, each document keeps only its
    first ``max(1, cap // len(scope))`` chunks, so a single large document
    cannot crowd the others out. Returns the packs and whether anything was
    dropped.
    """
    total = sum(doc.chunk_count for doc in scope)
    if total <= cap:
        return [ScopePack(doc, doc.chunks) for doc in scope], False
    per_doc = max(1, cap // len(scope))
    packs = [ScopePack(doc, doc.chunks[:per_doc]) for doc in scope]
    truncated = any(len(pack.chunks) < pack.document.chunk_count for pack in packs)
    return packs, truncated


class RetrievalEngine:
    """Embeds a query and the chunks in scope, ranks by cosine similarity."""

    def __init__(
        self,
        embedding_service: EmbeddingService,
        max_chunks: int = 800,
        batch_size: int = 64,
        concurrency: int = 4,
    ) -> None:
        self.embedding_service = embedding_service
        self.max_chunks = max_chunks
        self.batch_size = batch_size
        self.concurrency = concurrency

    async def retrieve(
        self,
        documents: Sequence[Document],
        query: str,
        doc_ids: Iterable[str] | None = None,
        k: int = 6,
    ) -> RetrievalResult:
        start_time = time.perf_counter()
        scope = resolve_scope(documents, doc_ids)
        packs, truncated = limit_scope_chunks(scope, self.max_chunks)
        candidates = [
            RetrievalItem(
                doc_id=pack.document.id,
                doc_name=pack.document.name,
                chunk_id=chunk.id,
                text=chunk.text,
                score=0.0,
            )
            for pack in packs
            for chunk in pack.chunks
        ]
        if truncated:
            logger.info(
                "Fairness cap kept %s of %s chunks across %s documents",
                len(candidates),
                sum(doc.chunk_count for doc in scope),
                len(scope),
            )

        query_vectors = await self.embedding_service.embed([query])
        if len(query_vectors) != 1:
            raise ServiceFailure("Embedding service returned no vector for the query")
        query_vector = query_vectors[0]
        chunk_vectors = await embed_in_batches(
            self.embedding_service,
            [item.text for item in candidates],
            batch_size=self.batch_size,
            concurrency=self.concurrency,
        )

        for item, vector in zip(candidates, chunk_vectors):
            item.score = cosine(query_vector, vector)
        # list.sort is stable, so equal scores keep scan order
        candidates.sort(key=lambda item: item.score, reverse=True)

        logger.debug("Ranked %s chunks in %.3fs", len(candidates), time.perf_counter() - start_time)
        return RetrievalResult(items=candidates[: max(0, k)], truncated=truncated)


__all__ = ["RetrievalEngine", "ScopePack", "resolve_scope", "limit_scope_chunks"]
