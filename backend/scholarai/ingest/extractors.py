"""Text extractors for supported upload formats.

Every extractor turns a stored upload into a finite async sequence of chunk
strings. Reading stops as soon as the per-document chunk cap or the
per-file character ceiling is reached, so arbitrarily large inputs cost a
bounded amount of memory. Each call to ``iter_chunks`` starts from scratch.
"""

from __future__ import annotations

import asyncio
import codecs
import shutil
import zipfile
from contextlib import aclosing
from pathlib import Path
from typing import AsyncIterator

import anyio
from anyio import to_thread
from docx import Document as DocxDocument
from docx.opc.exceptions import PackageNotFoundError

from scholarai.core.errors import ExtractionFailure, PdfToolMissing, UnsupportedFileType
from scholarai.core.logging import get_logger
from scholarai.ingest.chunker import Chunker, chunk_text
from scholarai.ingest.types import ExtractionLimits
from scholarai.utils.text import normalize_newlines

logger = get_logger(__name__)

PDF_ARGS = ("-layout", "-nopgbrk", "-enc", "UTF-8")


class BaseExtractor:
    """Common extractor interface."""

    suffixes: tuple[str, ...] = ()
    mime_types: tuple[str, ...] = ()

    def __init__(self, limits: ExtractionLimits | None = None) -> None:
        self.limits = limits or ExtractionLimits()

    def can_extract(self, filename: str, mime: str | None) -> bool:
        lowered = filename.lower()
        if any(lowered.endswith(suffix) for suffix in self.suffixes):
            return True
        return (mime or "").lower() in self.mime_types

    def iter_chunks(self, path: Path) -> AsyncIterator[str]:  # pragma: no cover - interface
        raise NotImplementedError

    async def extract(self, path: Path) -> list[str]:
        """Drain ``iter_chunks`` into a list."""
        async with aclosing(self.iter_chunks(path)) as stream:
            return [chunk async for chunk in stream]

    def _new_chunker(self) -> Chunker:
        return Chunker(
            size=self.limits.chunk_size,
            overlap=self.limits.chunk_overlap,
            max_chunks=self.limits.max_chunks,
        )

    async def _chunk_stream(self, pieces: AsyncIterator[str]) -> AsyncIterator[str]:
        """Chunk a text stream, closing the source once a ceiling is hit.

        A trailing ``\\r`` is held back until the next piece arrives so a CRLF
        split across two reads still collapses to a single ``\\n``.
        """
        chunker = self._new_chunker()
        consumed = 0
        carry = ""
        async with aclosing(pieces) as source:
            async for piece in source:
                remaining = self.limits.max_chars - consumed
                if remaining <= 0 or chunker.full:
                    break
                piece = carry + piece
                carry = "\r" if piece.endswith("\r") else ""
                if carry:
                    piece = piece[:-1]
                piece = normalize_newlines(piece)[:remaining]
                consumed += len(piece)
                for chunk in chunker.feed(piece):
                    yield chunk
                if chunker.full or consumed >= self.limits.max_chars:
                    carry = ""
                    break
        if carry and not chunker.full and consumed < self.limits.max_chars:
            for chunk in chunker.feed(carry):
                yield chunk
        for chunk in chunker.finish():
            yield chunk


class PlainTextExtractor(BaseExtractor):
    suffixes = (".txt", ".text", ".md", ".markdown")
    mime_types = ("text/plain", "text/markdown")

    def can_extract(self, filename: str, mime: str | None) -> bool:
        return super().can_extract(filename, mime) or (mime or "").lower().startswith("text/")

    async def iter_chunks(self, path: Path) -> AsyncIterator[str]:
        async with aclosing(self._chunk_stream(self._read_pieces(path))) as chunks:
            async for chunk in chunks:
                yield chunk

    async def _read_pieces(self, path: Path) -> AsyncIterator[str]:
        async with await anyio.open_file(path, "r", encoding="utf-8", errors="replace") as fh:
            while True:
                piece = await fh.read(self.limits.read_size)
                if not piece:
                    return
                yield piece


class RichDocumentExtractor(BaseExtractor):
    """DOCX extraction; python-docx only hands back whole paragraphs, so the
    bounded text is held in memory before chunking."""

    suffixes = (".docx",)
    mime_types = ("application/vnd.openxmlformats-officedocument.wordprocessingml.document",)

    async def iter_chunks(self, path: Path) -> AsyncIterator[str]:
        if path.stat().st_size == 0:
            return
        text = await to_thread.run_sync(_docx_text, path)
        bounded = normalize_newlines(text)[: self.limits.max_chars]
        for chunk in chunk_text(
            bounded,
            size=self.limits.chunk_size,
            overlap=self.limits.chunk_overlap,
            max_chunks=self.limits.max_chunks,
        ):
            yield chunk


class SubprocessPdfExtractor(BaseExtractor):
    """Runs ``pdftotext`` and chunks its stdout like a plain text stream."""

    suffixes = (".pdf",)
    mime_types = ("application/pdf", "application/x-pdf")

    def __init__(
        self,
        limits: ExtractionLimits | None = None,
        binary: str = "pdftotext",
        timeout: float = 8.0,
    ) -> None:
        super().__init__(limits)
        self.binary = binary
        self.timeout = timeout
        self._resolved: str | None = None

    @property
    def available(self) -> bool:
        if self._resolved is None:
            self._resolved = shutil.which(self.binary) or ""
            logger.info("pdftotext available: %s", bool(self._resolved))
        return bool(self._resolved)

    async def iter_chunks(self, path: Path) -> AsyncIterator[str]:
        if not self.available:
            raise PdfToolMissing()
        if path.stat().st_size == 0:
            return

        proc = await asyncio.create_subprocess_exec(
            self._resolved,
            *PDF_ARGS,
            str(path),
            "-",
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
        killed = False

        def _kill() -> None:
            nonlocal killed
            if proc.returncode is None:
                killed = True
                proc.kill()

        timer = asyncio.get_running_loop().call_later(self.timeout, _kill)
        produced = 0
        stream = self._chunk_stream(_read_stdout(proc.stdout, self.limits.read_size))
        try:
            async with aclosing(stream) as chunks:
                async for chunk in chunks:
                    produced += 1
                    yield chunk
        finally:
            timer.cancel()
            if proc.returncode is None:
                proc.kill()
            await proc.wait()

        if killed:
            logger.warning("pdftotext timed out after %ss on %s (%s chunks kept)", self.timeout, path.name, produced)
        if produced == 0 and (killed or proc.returncode != 0):
            raise ExtractionFailure(f"pdftotext produced no text (exit code {proc.returncode})")


class ExtractorRegistry:
    """Registry that selects an extractor by sniffed format."""

    def __init__(
        self,
        limits: ExtractionLimits | None = None,
        pdftotext_path: str = "pdftotext",
        pdf_timeout: float = 8.0,
    ) -> None:
        self.limits = limits or ExtractionLimits()
        self._extractors: list[BaseExtractor] = [
            SubprocessPdfExtractor(self.limits, binary=pdftotext_path, timeout=pdf_timeout),
            RichDocumentExtractor(self.limits),
            PlainTextExtractor(self.limits),
        ]

    def for_upload(self, filename: str, mime: str | None) -> BaseExtractor:
        for extractor in self._extractors:
            if extractor.can_extract(filename, mime):
                return extractor
        raise UnsupportedFileType(mime, filename)


def _docx_text(path: Path) -> str:
    try:
        document = DocxDocument(str(path))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as exc:
        raise ExtractionFailure(f"Unreadable DOCX file: {exc}") from exc
    return "\n".join(para.text for para in document.paragraphs)


async def _read_stdout(stream: asyncio.StreamReader, read_size: int) -> AsyncIterator[str]:
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        data = await stream.read(read_size)
        if not data:
            tail = decoder.decode(b"", final=True)
            if tail:
                yield tail
            return
        text = decoder.decode(data)
        if text:
            yield text


__all__ = [
    "BaseExtractor",
    "PlainTextExtractor",
    "RichDocumentExtractor",
    "SubprocessPdfExtractor",
    "ExtractorRegistry",
]
