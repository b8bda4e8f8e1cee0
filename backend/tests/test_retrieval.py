"""Tests for retrieval utilities."""

from __future__ import annotations

import asyncio
import math
import random
from typing import Sequence

import pytest

from conftest import CountingEmbedding
from scholarai.core.errors import NoDocumentsInScope, ServiceFailure
from scholarai.ingest.embeddings import embed_in_batches
from scholarai.models.entities import Document
from scholarai.retrieval import RetrievalEngine, cosine, limit_scope_chunks, resolve_scope


def _doc(doc_id: str, count: int, prefix: str = "chunk") -> Document:
    return Document.from_texts(doc_id, f"{doc_id}.txt", "2024-01-01T00:00:00.000Z", [f"{prefix} {i}" for i in range(count)])


class IndexEmbedding:
    """Encodes each text's trailing integer so output order can be checked."""

    def __init__(self) -> None:
        self.in_flight = 0
        self.max_in_flight = 0

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(random.uniform(0, 0.01))
        self.in_flight -= 1
        return [[float(text.rsplit(" ", 1)[-1]), 1.0] for text in texts]


class FailingEmbedding:
    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        raise ServiceFailure("Embedding service error: boom")


def test_cosine_properties() -> None:
    v = [0.3, -1.2, 4.0]
    w = [2.0, 0.5, -0.1]
    assert cosine(v, v) == pytest.approx(1.0)
    assert cosine(v, w) == cosine(w, v)
    assert cosine([0.0, 0.0, 0.0], v) == 0.0
    with pytest.raises(ValueError):
        cosine([1.0], [1.0, 2.0])


def test_resolve_scope() -> None:
    docs = [_doc("a", 1), _doc("b", 1)]
    assert [d.id for d in resolve_scope(docs)] == ["a", "b"]
    assert [d.id for d in resolve_scope(docs, [])] == ["a", "b"]
    assert [d.id for d in resolve_scope(docs, {"b"})] == ["b"]
    with pytest.raises(NoDocumentsInScope):
        resolve_scope(docs, ["missing"])
    with pytest.raises(NoDocumentsInScope):
        resolve_scope([])


def test_fairness_cap_limits_each_document() -> None:
    docs = [_doc("big", 700), _doc("mid", 300), _doc("small", 5)]
    packs, truncated = limit_scope_chunks(docs, cap=800)
    counts = {pack.document.id: len(pack.chunks) for pack in packs}
    assert truncated is True
    assert counts == {"big": 266, "mid": 266, "small": 5}
    assert all(count <= math.ceil(800 / len(docs)) for count in counts.values())
    # the cap keeps the leading chunks of each document
    assert [chunk.id for chunk in packs[0].chunks[:3]] == [0, 1, 2]


def test_fairness_cap_untouched_under_limit() -> None:
    docs = [_doc("a", 10), _doc("b", 20)]
    packs, truncated = limit_scope_chunks(docs, cap=800)
    assert truncated is False
    assert [len(pack.chunks) for pack in packs] == [10, 20]


def test_fairness_cap_keeps_one_chunk_per_document_minimum() -> None:
    docs = [_doc(f"d{i}", 3) for i in range(10)]
    packs, truncated = limit_scope_chunks(docs, cap=5)
    assert truncated is True
    assert all(len(pack.chunks) == 1 for pack in packs)


@pytest.mark.anyio
async def test_batches_preserve_order_under_fan_out() -> None:
    service = IndexEmbedding()
    texts = [f"t {i}" for i in range(50)]
    vectors = await embed_in_batches(service, texts, batch_size=4, concurrency=3)
    assert [vector[0] for vector in vectors] == [float(i) for i in range(50)]
    assert service.max_in_flight <= 3


@pytest.mark.anyio
async def test_failed_batch_cancels_remaining_batches() -> None:
    class FirstCallFails:
        def __init__(self) -> None:
            self.calls = 0

        async def embed(self, texts: Sequence[str]) -> list[list[float]]:
            self.calls += 1
            if self.calls == 1:
                await asyncio.sleep(0)
                raise ServiceFailure("Embedding service error: boom")
            await asyncio.sleep(0.05)
            return [[1.0, 0.0] for _ in texts]

    service = FirstCallFails()
    texts = [f"t {i}" for i in range(12 * 64)]
    with pytest.raises(ServiceFailure, match="boom"):
        await embed_in_batches(service, texts, batch_size=64, concurrency=4)
    calls_at_failure = service.calls
    assert calls_at_failure <= 4
    await asyncio.sleep(0.2)
    assert service.calls == calls_at_failure


@pytest.mark.anyio
async def test_retrieve_ranks_and_limits() -> None:
    docs = [
        Document.from_texts(
            "bio",
            "biology.txt",
            "2024-01-01T00:00:00.000Z",
            ["cells divide by mitosis", "photosynthesis happens in chloroplasts using light", "unrelated filler text"],
        ),
        Document.from_texts("hist", "history.txt", "2024-01-01T00:00:00.000Z", ["the treaty was signed in 1648"]),
    ]
    service = CountingEmbedding()
    engine = RetrievalEngine(service, batch_size=2)
    result = await engine.retrieve(docs, "photosynthesis chloroplasts light", k=2)

    assert len(result.items) == 2
    assert result.truncated is False
    top = result.items[0]
    assert (top.doc_id, top.doc_name, top.chunk_id) == ("bio", "biology.txt", 1)
    assert result.items[0].score >= result.items[1].score
    # one query call plus two chunk batches of at most two texts
    assert service.batches[0] == ["photosynthesis chloroplasts light"]
    assert [len(batch) for batch in service.batches[1:]] == [2, 2]


@pytest.mark.anyio
async def test_ties_keep_scan_order() -> None:
    docs = [_doc("a", 3, prefix="same"), _doc("b", 2, prefix="same")]

    class ConstantEmbedding:
        async def embed(self, texts: Sequence[str]) -> list[list[float]]:
            return [[1.0, 1.0] for _ in texts]

    result = await RetrievalEngine(ConstantEmbedding()).retrieve(docs, "query", k=10)
    assert [(item.doc_id, item.chunk_id) for item in result.items] == [("a", 0), ("a", 1), ("a", 2), ("b", 0), ("b", 1)]


@pytest.mark.anyio
async def test_empty_scope_makes_no_embedding_calls() -> None:
    service = CountingEmbedding()
    with pytest.raises(NoDocumentsInScope):
        await RetrievalEngine(service).retrieve([_doc("a", 2)], "question", doc_ids=["nope"])
    assert service.batches == []


@pytest.mark.anyio
async def test_embedding_failure_propagates() -> None:
    with pytest.raises(ServiceFailure):
        await RetrievalEngine(FailingEmbedding()).retrieve([_doc("a", 2)], "question")


@pytest.mark.anyio
async def test_short_batch_is_a_service_failure() -> None:
    class ShortEmbedding:
        async def embed(self, texts: Sequence[str]) -> list[list[float]]:
            return [[1.0]] * (len(texts) - 1) if len(texts) > 1 else [[1.0]]

    with pytest.raises(ServiceFailure):
        await RetrievalEngine(ShortEmbedding()).retrieve([_doc("a", 3)], "question")
