"""Embedding service adapters."""

from __future__ import annotations

import hashlib
import math
import re
from typing import Protocol, Sequence

import anyio
from openai import AsyncOpenAI, OpenAIError

from scholarai.core.errors import ServiceFailure
from scholarai.core.logging import get_logger
from scholarai.core.metrics import EMBEDDING_BATCHES

logger = get_logger(__name__)

_TOKEN_RE = re.compile(r"\w+")


class EmbeddingService(Protocol):
    """Batch of strings in, same-length batch of fixed-size vectors out."""

    async def embed(self, texts: Sequence[str]) -> list[list[float]]: ...


class HashedEmbeddingModel:
    """Lightweight hashed bag-of-words embedding with deterministic output.

    Needs no network access; used for offline development and tests.
    """

    def __init__(self, dim: int = 384) -> None:
        self._dim = dim

    @property
    def dim(self) -> int:
        return self._dim

    def encode(self, texts: Sequence[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        for text in texts:
            vector = [0.0] * self._dim
            for token in _tokenize(text):
                vector[_hash_token(token, self._dim)] += 1.0
            _normalize(vector)
            vectors.append(vector)
        return vectors

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        return self.encode(texts)


class OpenAIEmbeddingService:
    """Embeddings from the OpenAI API."""

    def __init__(self, api_key: str, model: str = "text-embedding-3-small", client: AsyncOpenAI | None = None) -> None:
        self.model = model
        self._client = client or AsyncOpenAI(api_key=api_key)

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            response = await self._client.embeddings.create(model=self.model, input=list(texts))
        except OpenAIError as exc:
            logger.error("Embedding request failed: %s", exc)
            raise ServiceFailure(f"Embedding service error: {exc}") from exc
        ordered = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in ordered]


async def embed_in_batches(
    service: EmbeddingService,
    texts: Sequence[str],
    batch_size: int = 64,
    concurrency: int = 4,
) -> list[list[float]]:
    """Embed ``texts`` in ordered batches with bounded fan-out.

    Vector ``i`` of the result always belongs to ``texts[i]``. The first
    failing batch cancels every other batch, including those still waiting
    for a slot, and its exception is raised as is.
    """
    if not texts:
        return []
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")
    limiter = anyio.CapacityLimiter(max(1, concurrency))
    batches = [texts[start : start + batch_size] for start in range(0, len(texts), batch_size)]
    results: list[list[list[float]]] = [[] for _ in batches]

    async def _run(slot: int, batch: Sequence[str]) -> None:
        async with limiter:
            EMBEDDING_BATCHES.inc()
            vectors = await service.embed(batch)
        if len(vectors) != len(batch):
            raise ServiceFailure(f"Embedding service returned {len(vectors)} vectors for {len(batch)} inputs")
        results[slot] = vectors

    try:
        async with anyio.create_task_group() as group:
            for slot, batch in enumerate(batches):
                group.start_soon(_run, slot, batch)
    except ExceptionGroup as failures:
        raise failures.exceptions[0]
    return [vector for batch_vectors in results for vector in batch_vectors]


def _tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall(text.lower())


def _hash_token(token: str, dim: int) -> int:
    digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big") % dim


def _normalize(vector: list[float]) -> None:
    norm = math.sqrt(sum(value * value for value in vector))
    if norm == 0:
        return
    inv = 1.0 / norm
    for idx, value in enumerate(vector):
        vector[idx] = value * inv


__all__ = ["EmbeddingService", "HashedEmbeddingModel", "OpenAIEmbeddingService", "embed_in_batches"]
