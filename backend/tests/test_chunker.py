"""Tests for chunker."""

import math
import string

import pytest

from scholarai.ingest.chunker import Chunker, chunk_text


def _dense_text(length: int) -> str:
    alphabet = string.ascii_letters + string.digits
    return "".join(alphabet[idx % len(alphabet)] for idx in range(length))


def test_fifty_thousand_chars_yield_eighteen_chunks(sample_text: str) -> None:
    chunks = chunk_text(sample_text, size=3000, overlap=200)
    assert len(sample_text) == 50_000
    assert len(chunks) == math.ceil((50_000 - 200) / 2800) == 18


def test_overlap_removed_reconstructs_text() -> None:
    text = _dense_text(50_000)
    chunks = chunk_text(text, size=3000, overlap=200)
    rebuilt = chunks[0] + "".join(chunk[200:] for chunk in chunks[1:])
    assert rebuilt == text
    for left, right in zip(chunks, chunks[1:]):
        assert left[-200:] == right[:200]


def test_incremental_feed_matches_one_shot() -> None:
    text = _dense_text(41_234)
    chunker = Chunker(size=3000, overlap=200)
    for start in range(0, len(text), 1777):
        chunker.feed(text[start : start + 1777])
    chunker.finish()
    assert chunker.chunks == chunk_text(text, size=3000, overlap=200)


def test_cap_is_a_hard_ceiling() -> None:
    chunker = Chunker(size=100, overlap=10, max_chunks=3)
    emitted = chunker.feed(_dense_text(1000))
    assert len(emitted) == 3
    assert chunker.full
    assert chunker.feed("more text") == []
    assert chunker.finish() == []
    assert len(chunker.chunks) == 3


def test_short_and_empty_input() -> None:
    assert chunk_text("") == []
    assert chunk_text("   \n\t ") == []
    assert chunk_text("  short note  ") == ["short note"]


def test_blank_windows_are_dropped() -> None:
    text = " " * 250 + "tail"
    chunks = chunk_text(text, size=100, overlap=0)
    assert chunks == ["tail"]


@pytest.mark.parametrize("size,overlap", [(100, 100), (100, 150), (0, 0), (100, -1)])
def test_invalid_window_configuration(size: int, overlap: int) -> None:
    with pytest.raises(ValueError):
        Chunker(size=size, overlap=overlap)
