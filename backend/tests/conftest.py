"""Test fixtures for ScholarAI."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Sequence

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from scholarai.ingest.embeddings import HashedEmbeddingModel  # noqa: E402


class FakeCompletion:
    """Completion service returning scripted replies and recording prompts."""

    def __init__(self, replies: Sequence[str] | None = None) -> None:
        self.replies = list(replies or [])
        self.calls: list[dict[str, object]] = []

    async def complete(
        self,
        system: str,
        user: str,
        temperature: float | None = None,
        json_mode: bool = False,
    ) -> str:
        self.calls.append({"system": system, "user": user, "temperature": temperature, "json_mode": json_mode})
        if self.replies:
            return self.replies.pop(0)
        return "stub answer [1]"


class CountingEmbedding(HashedEmbeddingModel):
    """Hashed embeddings that remember every batch they were asked for."""

    def __init__(self, dim: int = 384) -> None:
        super().__init__(dim=dim)
        self.batches: list[list[str]] = []

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        self.batches.append(list(texts))
        return await super().embed(texts)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset cached settings and point storage at the test directory."""
    monkeypatch.setenv("SCHOLAR_STORE_PATH", str(tmp_path / "data" / "store.json"))
    monkeypatch.setenv("SCHOLAR_UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("SCHOLAR_OPENAI_API_KEY", "test-key")
    monkeypatch.setenv("SCHOLAR_EMBEDDING_PROVIDER", "hashed")
    monkeypatch.delenv("SCHOLAR_CONFIG", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    from scholarai.api import dependencies as deps

    deps.reset_dependency_state()
    yield
    deps.reset_dependency_state()


@pytest.fixture
def fake_completion() -> FakeCompletion:
    return FakeCompletion()


@pytest.fixture
def embedding_service() -> CountingEmbedding:
    return CountingEmbedding()


@pytest.fixture(scope="session")
def sample_text() -> str:
    return "word " * 10_000
