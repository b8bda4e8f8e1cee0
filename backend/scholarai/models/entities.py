"""Internal dataclasses representing persisted and transient entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence


@dataclass(slots=True, frozen=True)
class Chunk:
    id: int
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text}

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Chunk":
        # any other key (e.g. a cached "embedding") is dropped
        chunk_id = raw["id"]
        text = raw["text"]
        if not isinstance(chunk_id, int) or isinstance(chunk_id, bool) or not isinstance(text, str):
            raise ValueError("chunk requires integer id and string text")
        return cls(id=chunk_id, text=text)


@dataclass(slots=True, frozen=True)
class Document:
    id: str
    name: str
    created_at: str
    chunks: tuple[Chunk, ...]

    @property
    def chunk_count(self) -> int:
        return len(self.chunks)

    @classmethod
    def from_texts(cls, doc_id: str, name: str, created_at: str, texts: Sequence[str]) -> "Document":
        """Build a document, numbering chunks in emission order."""
        return cls(
            id=doc_id,
            name=name,
            created_at=created_at,
            chunks=tuple(Chunk(id=idx, text=text) for idx, text in enumerate(texts)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": self.created_at,
            "chunkCount": self.chunk_count,
            "chunks": [chunk.to_dict() for chunk in self.chunks],
        }

    def metadata(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "chunkCount": self.chunk_count,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Document":
        doc_id = raw["id"]
        name = raw["name"]
        if not isinstance(doc_id, str) or not isinstance(name, str):
            raise ValueError("document requires string id and name")
        chunks = raw.get("chunks") or []
        if not isinstance(chunks, list):
            raise ValueError("document chunks must be a list")
        return cls(
            id=doc_id,
            name=name,
            created_at=str(raw.get("createdAt") or ""),
            chunks=tuple(Chunk.from_dict(item) for item in chunks),
        )


@dataclass(slots=True)
class Store:
    docs: list[Document] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"docs": [doc.to_dict() for doc in self.docs]}

    @classmethod
    def from_dict(cls, raw: Any) -> "Store":
        if not isinstance(raw, Mapping):
            raise ValueError("store root must be an object")
        docs = raw.get("docs") or []
        if not isinstance(docs, list):
            raise ValueError("store docs must be a list")
        return cls(docs=[Document.from_dict(item) for item in docs])

    def get(self, doc_id: str) -> Document | None:
        return next((doc for doc in self.docs if doc.id == doc_id), None)


@dataclass(slots=True)
class RetrievalItem:
    doc_id: str
    doc_name: str
    chunk_id: int
    text: str
    score: float


@dataclass(slots=True)
class RetrievalResult:
    items: list[RetrievalItem]
    truncated: bool = False


@dataclass(slots=True)
class Citation:
    label: int
    name: str
    chunk_id: int
    doc_id: str
    score: float

    @classmethod
    def from_items(cls, items: Sequence[RetrievalItem]) -> list["Citation"]:
        return [
            cls(label=idx + 1, name=item.doc_name, chunk_id=item.chunk_id, doc_id=item.doc_id, score=item.score)
            for idx, item in enumerate(items)
        ]


__all__ = ["Chunk", "Document", "Store", "RetrievalItem", "RetrievalResult", "Citation"]
