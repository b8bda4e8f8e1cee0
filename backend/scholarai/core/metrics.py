"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

REQUEST_COUNT = Counter(
    "scholar_requests_total",
    "Total HTTP requests",
    labelnames=("endpoint", "method", "status"),
    registry=REGISTRY,
)

REQUEST_LATENCY = Histogram(
    "scholar_request_latency_seconds",
    "Latency of HTTP requests",
    labelnames=("endpoint", "method"),
    registry=REGISTRY,
)

DOCUMENTS_INGESTED = Counter(
    "scholar_documents_ingested_total",
    "Documents persisted after successful extraction",
    registry=REGISTRY,
)

EXTRACTION_FAILURES = Counter(
    "scholar_extraction_failures_total",
    "Uploaded files skipped during extraction",
    labelnames=("reason",),
    registry=REGISTRY,
)

EMBEDDING_BATCHES = Counter(
    "scholar_embedding_batches_total",
    "Embedding service calls issued",
    registry=REGISTRY,
)

STORE_RESETS = Counter(
    "scholar_store_resets_total",
    "Times the document store self-healed to empty",
    labelnames=("reason",),
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "DOCUMENTS_INGESTED",
    "EXTRACTION_FAILURES",
    "EMBEDDING_BATCHES",
    "STORE_RESETS",
    "metrics_response",
]
