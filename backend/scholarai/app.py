"""FastAPI application setup for ScholarAI."""

from __future__ import annotations

import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from scholarai.api.dependencies import get_app_settings
from scholarai.api.routes_admin import router as admin_router
from scholarai.api.routes_documents import router as documents_router
from scholarai.api.routes_study import router as study_router
from scholarai.core.errors import ScholarError
from scholarai.core.logging import configure_logging, get_logger
from scholarai.core.metrics import REQUEST_COUNT, REQUEST_LATENCY

configure_logging()
logger = get_logger(__name__)

app = FastAPI(
    title="ScholarAI",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(documents_router, prefix="/api", tags=["documents"])
app.include_router(study_router, prefix="/api", tags=["study"])
app.include_router(admin_router, prefix="/api", tags=["admin"])


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    start_time = time.perf_counter()
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = getattr(route, "path", "unmatched")
    REQUEST_LATENCY.labels(endpoint=endpoint, method=request.method).observe(time.perf_counter() - start_time)
    REQUEST_COUNT.labels(endpoint=endpoint, method=request.method, status=str(response.status_code)).inc()
    return response


@app.exception_handler(ScholarError)
async def handle_scholar_error(_request: Request, exc: ScholarError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def handle_validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": _describe_validation(exc)})


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(Exception)
async def handle_unexpected(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.on_event("startup")
async def startup() -> None:
    """Validate configuration on startup."""
    settings = get_app_settings()
    logger.info("Document store at %s", settings.store_path)
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; upload and study routes will refuse requests")


def _describe_validation(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(location) or "body"
    if first.get("type") == "missing":
        return f"Missing {field}"
    return f"Invalid {field}: {first.get('msg', 'invalid value')}"
