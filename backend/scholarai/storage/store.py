"""Durable, self-healing JSON persistence of documents-as-chunk-lists."""

from __future__ import annotations

import os
from pathlib import Path

import orjson
from anyio import to_thread

from scholarai.core.errors import StoreTooLarge
from scholarai.core.logging import get_logger, log_context
from scholarai.core.metrics import STORE_RESETS
from scholarai.models.entities import Document, Store

logger = get_logger(__name__)

DEFAULT_MAX_BYTES = 5 * 1024 * 1024


class DocumentStore:
    """Single-file store holding only chunk text.

    ``load`` never raises on bad persisted state: a missing, empty, oversized
    or unparseable file is replaced by an empty store on disk. ``save`` writes
    a sibling temp file and renames it over the target, so readers see either
    the old or the new store. There is no locking between writers; the last
    rename wins.
    """

    def __init__(self, path: Path, max_bytes: int = DEFAULT_MAX_BYTES) -> None:
        self.path = Path(path).expanduser()
        self.max_bytes = max_bytes

    @property
    def tmp_path(self) -> Path:
        return self.path.with_name(self.path.name + ".tmp")

    async def load(self) -> Store:
        return await to_thread.run_sync(self.load_sync)

    async def save(self, store: Store) -> None:
        await to_thread.run_sync(self.save_sync, store)

    async def append(self, *documents: Document) -> Store:
        """Load, add documents, save. Returns the saved store."""
        store = await self.load()
        store.docs.extend(documents)
        await self.save(store)
        return store

    async def remove(self, doc_id: str) -> bool:
        """Delete a document and its chunks; False when the id is unknown."""
        store = await self.load()
        remaining = [doc for doc in store.docs if doc.id != doc_id]
        if len(remaining) == len(store.docs):
            return False
        store.docs = remaining
        await self.save(store)
        return True

    async def get(self, doc_id: str) -> Document | None:
        store = await self.load()
        return store.get(doc_id)

    async def list_documents(self) -> list[Document]:
        store = await self.load()
        return list(store.docs)

    # Synchronous core ---------------------------------------------------

    def load_sync(self) -> Store:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            if not self.path.exists():
                return self._reset("missing")
            size = self.path.stat().st_size
            if size == 0:
                return self._reset("empty")
            if size > self.max_bytes:
                return self._reset("oversized")
            raw = self.path.read_bytes().strip()
            if not raw:
                return self._reset("empty")
            return Store.from_dict(orjson.loads(raw))
        except (orjson.JSONDecodeError, KeyError, TypeError, ValueError, UnicodeDecodeError) as exc:
            logger.warning("Store at %s is corrupt (%s); resetting", self.path, exc)
            return self._reset("corrupt")

    def save_sync(self, store: Store) -> None:
        payload = orjson.dumps(store.to_dict(), option=orjson.OPT_INDENT_2)
        if len(payload) > self.max_bytes:
            raise StoreTooLarge(len(payload), self.max_bytes)
        self._write(payload)

    def _reset(self, reason: str) -> Store:
        if reason != "missing":
            logger.warning("Resetting document store", extra=log_context(path=str(self.path), reason=reason))
        STORE_RESETS.labels(reason=reason).inc()
        store = Store()
        self._write(orjson.dumps(store.to_dict(), option=orjson.OPT_INDENT_2))
        return store

    def _write(self, payload: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.tmp_path
        with tmp.open("wb") as fh:
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, self.path)


__all__ = ["DocumentStore", "DEFAULT_MAX_BYTES"]
