"""Administrative routes for ScholarAI."""

from __future__ import annotations

from fastapi import APIRouter

from scholarai.core.metrics import metrics_response

router = APIRouter()


@router.get("/health", summary="Liveness probe")
async def health() -> dict[str, bool]:
    return {"ok": True}


@router.get("/metrics", summary="Prometheus metrics", include_in_schema=False)
async def get_metrics():
    return metrics_response()


__all__ = ["router"]
