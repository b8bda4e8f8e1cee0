"""Chunking utilities."""

from __future__ import annotations


class Chunker:
    """Incremental fixed-window chunker with overlap and a per-document cap.

    Text is fed piece by piece as it is read. Whenever the accumulator holds at
    least ``size`` characters, the first window is emitted (stripped, dropped
    when blank) and the accumulator keeps everything from ``size - overlap``
    onwards, so consecutive windows share ``overlap`` characters. Once
    ``max_chunks`` windows have been emitted the chunker is ``full`` and
    discards further input.
    """

    __slots__ = ("size", "overlap", "max_chunks", "_buffer", "_chunks")

    def __init__(self, size: int = 3000, overlap: int = 200, max_chunks: int = 300) -> None:
        if size <= 0:
            raise ValueError("chunk size must be positive")
        if not 0 <= overlap < size:
            raise ValueError("chunk overlap must be in [0, size)")
        if max_chunks <= 0:
            raise ValueError("max_chunks must be positive")
        self.size = size
        self.overlap = overlap
        self.max_chunks = max_chunks
        self._buffer = ""
        self._chunks: list[str] = []

    @property
    def chunks(self) -> list[str]:
        return list(self._chunks)

    @property
    def full(self) -> bool:
        return len(self._chunks) >= self.max_chunks

    def feed(self, text: str) -> list[str]:
        """Append text and return the windows it completed."""
        if self.full or not text:
            return []
        self._buffer += text
        emitted: list[str] = []
        step = self.size - self.overlap
        while len(self._buffer) >= self.size and not self.full:
            window = self._buffer[: self.size].strip()
            if window:
                self._chunks.append(window)
                emitted.append(window)
            self._buffer = self._buffer[step:]
        if self.full:
            self._buffer = ""
        return emitted

    def finish(self) -> list[str]:
        """Flush the remainder as a final chunk when the cap allows it."""
        tail = self._buffer.strip()
        self._buffer = ""
        if not tail or self.full:
            return []
        self._chunks.append(tail)
        return [tail]


def chunk_text(
    text: str,
    size: int = 3000,
    overlap: int = 200,
    max_chunks: int = 300,
) -> list[str]:
    """Split a complete string into overlapping windows."""
    chunker = Chunker(size=size, overlap=overlap, max_chunks=max_chunks)
    chunker.feed(text)
    chunker.finish()
    return chunker.chunks


__all__ = ["Chunker", "chunk_text"]
