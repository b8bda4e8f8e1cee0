"""Retrieval orchestration components."""

from .search import RetrievalEngine, limit_scope_chunks, resolve_scope
from .similarity import cosine

__all__ = [
    "RetrievalEngine",
    "limit_scope_chunks",
    "resolve_scope",
    "cosine",
]
