"""Ingest pipeline orchestration: staged upload -> extractor -> chunks -> store."""

from __future__ import annotations

import secrets
import time
from pathlib import Path
from typing import Protocol, Sequence

import anyio

from scholarai.core.config import Settings
from scholarai.core.errors import PdfToolMissing, ScholarError, UploadTooLarge
from scholarai.core.logging import get_logger, log_context
from scholarai.core.metrics import DOCUMENTS_INGESTED, EXTRACTION_FAILURES
from scholarai.ingest.extractors import ExtractorRegistry
from scholarai.ingest.types import ExtractionLimits, IngestResult, IngestStats, StagedUpload
from scholarai.models.entities import Document
from scholarai.storage.store import DocumentStore
from scholarai.utils.ids import new_id
from scholarai.utils.text import safe_filename
from scholarai.utils.time import utc_now_iso

logger = get_logger(__name__)

COPY_BUFSIZE = 64 * 1024


class AsyncReadable(Protocol):
    filename: str | None
    content_type: str | None

    async def read(self, size: int = -1) -> bytes: ...


class IngestPipeline:
    """Coordinate extraction, chunking and persistence of uploaded files."""

    def __init__(
        self,
        store: DocumentStore,
        settings: Settings,
        registry: ExtractorRegistry | None = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.registry = registry or ExtractorRegistry(
            ExtractionLimits.from_settings(settings),
            pdftotext_path=settings.pdftotext_path,
            pdf_timeout=settings.pdf_timeout_seconds,
        )

    async def stage(self, upload: AsyncReadable) -> StagedUpload:
        """Copy an incoming upload to a temp file, enforcing the size limit."""
        upload_dir = self.settings.upload_dir
        upload_dir.mkdir(parents=True, exist_ok=True)
        original = upload.filename or "upload"
        target = upload_dir / f"{time.time_ns()}-{secrets.token_hex(4)}-{safe_filename(original)}"
        written = 0
        try:
            async with await anyio.open_file(target, "wb") as fh:
                while True:
                    data = await upload.read(COPY_BUFSIZE)
                    if not data:
                        break
                    written += len(data)
                    if written > self.settings.max_upload_bytes:
                        raise UploadTooLarge(original, self.settings.max_upload_bytes)
                    await fh.write(data)
        except BaseException:
            target.unlink(missing_ok=True)
            raise
        return StagedUpload(path=target, filename=original, content_type=upload.content_type)

    async def ingest_uploads(self, uploads: Sequence[StagedUpload]) -> list[IngestResult]:
        """Extract every staged upload and persist the ones that produced text.

        A failing file is skipped without affecting its siblings, except for a
        missing PDF tool which aborts the whole batch. Staged files are always
        deleted.
        """
        results: list[IngestResult] = []
        try:
            for upload in uploads:
                results.append(await self._process(upload))
        finally:
            for upload in uploads:
                upload.path.unlink(missing_ok=True)

        documents = [result.document for result in results if result.document is not None]
        if documents:
            await self.store.append(*documents)
            DOCUMENTS_INGESTED.inc(len(documents))
        stats = _stats_from_results(results)
        logger.info("Ingested uploads", extra=log_context(**stats.to_dict()))
        return results

    async def _process(self, upload: StagedUpload) -> IngestResult:
        try:
            extractor = self.registry.for_upload(upload.filename, upload.content_type)
            chunks = await extractor.extract(upload.path)
        except PdfToolMissing:
            raise
        except ScholarError as exc:
            logger.warning("Skipping %s: %s", upload.filename, exc.message)
            EXTRACTION_FAILURES.labels(reason=exc.code).inc()
            return IngestResult(filename=upload.filename, status="error", detail=exc.message)
        except Exception as exc:
            logger.exception("Extraction failed for %s: %s", upload.filename, exc)
            EXTRACTION_FAILURES.labels(reason="unexpected").inc()
            return IngestResult(filename=upload.filename, status="error", detail=str(exc))
        finally:
            upload.path.unlink(missing_ok=True)

        if not chunks:
            logger.warning("Document %s produced no chunks", upload.filename)
            EXTRACTION_FAILURES.labels(reason="empty").inc()
            return IngestResult(filename=upload.filename, status="skipped")

        document = Document.from_texts(new_id(), upload.filename, utc_now_iso(), chunks)
        return IngestResult(filename=upload.filename, status="processed", document=document)


def _stats_from_results(results: Sequence[IngestResult]) -> IngestStats:
    stats = IngestStats()
    for item in results:
        if item.status == "processed":
            stats.processed += 1
            stats.chunks += item.document.chunk_count if item.document else 0
        elif item.status == "skipped":
            stats.skipped += 1
        elif item.status == "error":
            stats.failed += 1
    return stats


__all__ = ["IngestPipeline"]
