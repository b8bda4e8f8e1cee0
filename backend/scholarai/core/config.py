"""Application configuration handling."""

from __future__ import annotations

import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

ENV_PREFIX = "SCHOLAR_"
DEFAULT_CONFIG_PATH = Path("~/.config/scholarai/config.yaml")

_YAML_KEY_MAP: Mapping[tuple[str, ...], str] = {
    ("storage", "store_path"): "store_path",
    ("storage", "max_bytes"): "max_store_bytes",
    ("chunking", "size"): "chunk_size",
    ("chunking", "overlap"): "chunk_overlap",
    ("chunking", "max_chunks_per_doc"): "max_chunks_per_doc",
    ("extraction", "max_text_per_file"): "max_text_per_file",
    ("extraction", "read_size"): "stream_read_size",
    ("extraction", "pdf_timeout_seconds"): "pdf_timeout_seconds",
    ("extraction", "pdftotext_path"): "pdftotext_path",
    ("retrieval", "max_chunks"): "max_chunks_for_ask",
    ("retrieval", "batch_size"): "embedding_batch_size",
    ("retrieval", "concurrency"): "embedding_concurrency",
    ("retrieval", "top_k"): "top_k",
    ("models", "provider"): "embedding_provider",
    ("models", "embedding_model"): "embedding_model",
    ("models", "completion_model"): "completion_model",
    ("upload", "dir"): "upload_dir",
    ("upload", "max_files"): "max_upload_files",
    ("upload", "max_file_bytes"): "max_upload_bytes",
}


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    store_path: Path = Field(default=Path.home() / ".scholarai" / "store.json")
    max_store_bytes: int = 5 * 1024 * 1024

    chunk_size: int = 3000
    chunk_overlap: int = 200
    max_chunks_per_doc: int = 300

    max_text_per_file: int = 80_000
    stream_read_size: int = 16 * 1024
    pdf_timeout_seconds: float = 8.0
    pdftotext_path: str = "pdftotext"

    max_chunks_for_ask: int = 800
    embedding_batch_size: int = 64
    embedding_concurrency: int = 4
    top_k: int = Field(default=6, ge=1, le=50)

    embedding_provider: Literal["openai", "hashed"] = "openai"
    embedding_model: str = "text-embedding-3-small"
    completion_model: str = "gpt-4o-mini"
    openai_api_key: str | None = None

    upload_dir: Path = Field(default=Path(tempfile.gettempdir()) / "scholarai-uploads")
    max_upload_files: int = 10
    max_upload_bytes: int = 20 * 1024 * 1024

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("store_path", "upload_dir", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        if isinstance(value, Path):
            return value.expanduser()
        if isinstance(value, str):
            return Path(value).expanduser()
        raise TypeError("path settings must be a path or string")

    @model_validator(mode="after")
    def _check_chunking(self) -> "Settings":
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        return self

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            data.update(_flatten_yaml(raw))
        data.update(_load_env_overrides())
        return cls(**data)

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        resolved_default = DEFAULT_CONFIG_PATH.expanduser()
        return resolved_default if resolved_default.exists() else None


def _flatten_yaml(raw: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> dict[str, Any]:
    """Flatten nested YAML configuration to Settings field names."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        next_prefix = prefix + (key,)
        if isinstance(value, Mapping):
            flat.update(_flatten_yaml(value, prefix=next_prefix))
        else:
            mapped_key = _YAML_KEY_MAP.get(next_prefix)
            if mapped_key:
                flat[mapped_key] = value
            elif key in Settings.model_fields:
                flat[key] = value
    return flat


def _load_env_overrides() -> dict[str, Any]:
    """Map SCHOLAR_-prefixed environment variables into Settings fields."""
    overrides: dict[str, Any] = {}
    plain_key = os.environ.get("OPENAI_API_KEY")
    if plain_key:
        overrides["openai_api_key"] = plain_key
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields:
            overrides[field_name] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = ["Settings", "get_settings"]
