"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends
from openai import AsyncOpenAI

from scholarai.core.config import Settings, get_settings
from scholarai.core.errors import MissingCredentials
from scholarai.generation.completion import CompletionService, OpenAICompletionService
from scholarai.ingest.embeddings import EmbeddingService, HashedEmbeddingModel, OpenAIEmbeddingService
from scholarai.ingest.extractors import ExtractorRegistry
from scholarai.ingest.pipeline import IngestPipeline
from scholarai.ingest.types import ExtractionLimits
from scholarai.retrieval import RetrievalEngine
from scholarai.storage.store import DocumentStore

_REGISTRY: ExtractorRegistry | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


@lru_cache(maxsize=4)
def _openai_client(api_key: str) -> AsyncOpenAI:
    return AsyncOpenAI(api_key=api_key)


def get_document_store(settings: Settings = Depends(get_app_settings)) -> DocumentStore:
    return DocumentStore(settings.store_path, max_bytes=settings.max_store_bytes)


def require_credentials(settings: Settings = Depends(get_app_settings)) -> str:
    if not settings.openai_api_key:
        raise MissingCredentials()
    return settings.openai_api_key


def get_extractor_registry(settings: Settings = Depends(get_app_settings)) -> ExtractorRegistry:
    global _REGISTRY
    if _REGISTRY is None:
        _REGISTRY = ExtractorRegistry(
            ExtractionLimits.from_settings(settings),
            pdftotext_path=settings.pdftotext_path,
            pdf_timeout=settings.pdf_timeout_seconds,
        )
    return _REGISTRY


def get_embedding_service(
    settings: Settings = Depends(get_app_settings),
    api_key: str = Depends(require_credentials),
) -> EmbeddingService:
    if settings.embedding_provider == "hashed":
        return HashedEmbeddingModel()
    return OpenAIEmbeddingService(api_key, model=settings.embedding_model, client=_openai_client(api_key))


def get_completion_service(
    settings: Settings = Depends(get_app_settings),
    api_key: str = Depends(require_credentials),
) -> CompletionService:
    return OpenAICompletionService(api_key, model=settings.completion_model, client=_openai_client(api_key))


def get_retrieval_engine(
    settings: Settings = Depends(get_app_settings),
    embedding_service: EmbeddingService = Depends(get_embedding_service),
) -> RetrievalEngine:
    return RetrievalEngine(
        embedding_service,
        max_chunks=settings.max_chunks_for_ask,
        batch_size=settings.embedding_batch_size,
        concurrency=settings.embedding_concurrency,
    )


def get_ingest_pipeline(
    settings: Settings = Depends(get_app_settings),
    store: DocumentStore = Depends(get_document_store),
    registry: ExtractorRegistry = Depends(get_extractor_registry),
) -> IngestPipeline:
    return IngestPipeline(store=store, settings=settings, registry=registry)


def reset_dependency_state() -> None:
    """Drop cached settings, clients and the extractor registry."""
    global _REGISTRY
    get_app_settings.cache_clear()
    get_settings.cache_clear()
    _openai_client.cache_clear()
    _REGISTRY = None


__all__ = [
    "get_app_settings",
    "get_document_store",
    "require_credentials",
    "get_extractor_registry",
    "get_embedding_service",
    "get_completion_service",
    "get_retrieval_engine",
    "get_ingest_pipeline",
    "reset_dependency_state",
]
