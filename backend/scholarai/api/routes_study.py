"""Question answering and single-document study tool routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from scholarai.api.dependencies import (
    get_app_settings,
    get_completion_service,
    get_document_store,
    get_retrieval_engine,
)
from scholarai.core.config import Settings
from scholarai.core.errors import NotFound
from scholarai.generation import adapters
from scholarai.generation.completion import CompletionService
from scholarai.models.dto import (
    AskRequest,
    AskResponse,
    CitationModel,
    DocumentRequest,
    FlashcardsRequest,
    FlashcardsResponse,
    GlossaryResponse,
    LearningPlanResponse,
    QuizRequest,
    QuizResponse,
    SummarizeRequest,
    SummaryResponse,
)
from scholarai.models.entities import Document
from scholarai.retrieval import RetrievalEngine
from scholarai.storage.store import DocumentStore

router = APIRouter()


async def _load_document(store: DocumentStore, doc_id: str) -> Document:
    document = await store.get(doc_id)
    if document is None:
        raise NotFound()
    return document


@router.post("/ask", response_model=AskResponse, summary="Answer a question from uploaded documents")
async def ask_question(
    request: AskRequest,
    settings: Settings = Depends(get_app_settings),
    store: DocumentStore = Depends(get_document_store),
    engine: RetrievalEngine = Depends(get_retrieval_engine),
    completion: CompletionService = Depends(get_completion_service),
) -> AskResponse:
    snapshot = await store.load()
    k = request.k if request.k is not None else settings.top_k
    result = await engine.retrieve(snapshot.docs, request.question, doc_ids=request.doc_ids, k=k)
    answer = await adapters.ask(completion, request.question, result)
    return AskResponse(
        answer=answer.answer,
        citations=[
            CitationModel(
                label=citation.label,
                name=citation.name,
                chunk_id=citation.chunk_id,
                doc_id=citation.doc_id,
                score=citation.score,
            )
            for citation in answer.citations
        ],
        truncated=answer.truncated,
    )


@router.post("/summarize", response_model=SummaryResponse, summary="Summarize one document")
async def summarize_document(
    request: SummarizeRequest,
    store: DocumentStore = Depends(get_document_store),
    completion: CompletionService = Depends(get_completion_service),
) -> SummaryResponse:
    document = await _load_document(store, request.doc_id)
    summary = await adapters.summarize(completion, document, max_chars=request.max_chars)
    return SummaryResponse(summary=summary)


@router.post("/flashcards", response_model=FlashcardsResponse, summary="Generate flashcards for one document")
async def generate_flashcards(
    request: FlashcardsRequest,
    store: DocumentStore = Depends(get_document_store),
    completion: CompletionService = Depends(get_completion_service),
) -> FlashcardsResponse:
    document = await _load_document(store, request.doc_id)
    cards = await adapters.flashcards(completion, document, count=request.count)
    return FlashcardsResponse(flashcards=cards)


@router.post("/quiz", response_model=QuizResponse, summary="Generate a multiple-choice quiz for one document")
async def generate_quiz(
    request: QuizRequest,
    store: DocumentStore = Depends(get_document_store),
    completion: CompletionService = Depends(get_completion_service),
) -> QuizResponse:
    document = await _load_document(store, request.doc_id)
    questions = await adapters.quiz(completion, document, count=request.count)
    return QuizResponse(questions=questions)


@router.post("/glossary", response_model=GlossaryResponse, summary="Extract key terms from one document")
async def generate_glossary(
    request: DocumentRequest,
    store: DocumentStore = Depends(get_document_store),
    completion: CompletionService = Depends(get_completion_service),
) -> GlossaryResponse:
    document = await _load_document(store, request.doc_id)
    terms = await adapters.glossary(completion, document)
    return GlossaryResponse(terms=terms)


@router.post("/learning-plan", response_model=LearningPlanResponse, summary="Plan study steps for one document")
async def generate_learning_plan(
    request: DocumentRequest,
    store: DocumentStore = Depends(get_document_store),
    completion: CompletionService = Depends(get_completion_service),
) -> LearningPlanResponse:
    document = await _load_document(store, request.doc_id)
    return await adapters.learning_plan(completion, document)


__all__ = ["router"]
