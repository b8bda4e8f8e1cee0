"""Common ingestion data structures."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from scholarai.core.config import Settings
from scholarai.models.entities import Document


@dataclass(slots=True, frozen=True)
class ExtractionLimits:
    """Caps applied to every extractor."""

    chunk_size: int = 3000
    chunk_overlap: int = 200
    max_chunks: int = 300
    max_chars: int = 80_000
    read_size: int = 16 * 1024

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExtractionLimits":
        return cls(
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            max_chunks=settings.max_chunks_per_doc,
            max_chars=settings.max_text_per_file,
            read_size=settings.stream_read_size,
        )


@dataclass(slots=True)
class StagedUpload:
    """An uploaded file written to a temporary path, awaiting extraction."""

    path: Path
    filename: str
    content_type: str | None = None


@dataclass(slots=True)
class IngestStats:
    """Aggregated ingest statistics."""

    processed: int = 0
    skipped: int = 0
    failed: int = 0
    chunks: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": self.failed,
            "chunks": self.chunks,
        }


@dataclass(slots=True)
class IngestResult:
    """Outcome for a single uploaded file."""

    filename: str
    status: str
    document: Document | None = None
    detail: str | None = None


__all__ = ["ExtractionLimits", "StagedUpload", "IngestStats", "IngestResult"]
