"""Document upload, listing and deletion routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile

from scholarai.api.dependencies import (
    get_app_settings,
    get_document_store,
    get_ingest_pipeline,
    require_credentials,
)
from scholarai.core.config import Settings
from scholarai.core.errors import NotFound, ValidationError
from scholarai.ingest.pipeline import IngestPipeline
from scholarai.ingest.types import StagedUpload
from scholarai.models.dto import (
    DeleteResponse,
    DocumentListResponse,
    DocumentSummary,
    UploadedDocument,
    UploadResponse,
)
from scholarai.storage.store import DocumentStore

router = APIRouter()


@router.get("/docs", response_model=DocumentListResponse, summary="List uploaded documents")
async def list_documents(store: DocumentStore = Depends(get_document_store)) -> DocumentListResponse:
    documents = await store.list_documents()
    return DocumentListResponse(docs=[DocumentSummary(**doc.metadata()) for doc in documents])


@router.post(
    "/upload",
    response_model=UploadResponse,
    summary="Upload documents and store their text chunks",
    dependencies=[Depends(require_credentials)],
)
async def upload_documents(
    files: list[UploadFile] = File(...),
    settings: Settings = Depends(get_app_settings),
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
) -> UploadResponse:
    if not files:
        raise ValidationError("No files uploaded")
    if len(files) > settings.max_upload_files:
        raise ValidationError(f"Too many files (max {settings.max_upload_files})")

    staged: list[StagedUpload] = []
    try:
        for upload in files:
            staged.append(await pipeline.stage(upload))
    except BaseException:
        for item in staged:
            item.path.unlink(missing_ok=True)
        raise

    results = await pipeline.ingest_uploads(staged)
    return UploadResponse(
        uploaded=[
            UploadedDocument(id=result.document.id, name=result.document.name, chunk_count=result.document.chunk_count)
            for result in results
            if result.document is not None
        ]
    )


@router.delete("/docs/{doc_id}", response_model=DeleteResponse, summary="Delete a document and its chunks")
async def delete_document(doc_id: str, store: DocumentStore = Depends(get_document_store)) -> DeleteResponse:
    if not await store.remove(doc_id):
        raise NotFound()
    return DeleteResponse(deleted=doc_id)


__all__ = ["router"]
