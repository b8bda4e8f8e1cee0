"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class DocumentSummary(CamelModel):
    id: str
    name: str
    chunk_count: int = Field(alias="chunkCount")
    created_at: str = Field(alias="createdAt")


class DocumentListResponse(BaseModel):
    docs: list[DocumentSummary]


class UploadedDocument(CamelModel):
    id: str
    name: str
    chunk_count: int = Field(alias="chunkCount")


class UploadResponse(BaseModel):
    uploaded: list[UploadedDocument]


class DeleteResponse(BaseModel):
    deleted: str


class AskRequest(CamelModel):
    question: str = Field(min_length=1)
    doc_ids: list[str] | None = Field(default=None, alias="docIds")
    k: int | None = Field(default=None, ge=1, le=50)


class CitationModel(CamelModel):
    label: int
    name: str
    chunk_id: int = Field(alias="chunkId")
    doc_id: str = Field(alias="docId")
    score: float


class AskResponse(BaseModel):
    answer: str
    citations: list[CitationModel]
    truncated: bool = False


class DocumentRequest(CamelModel):
    doc_id: str = Field(min_length=1, alias="docId")


class SummarizeRequest(DocumentRequest):
    max_chars: int = Field(default=100_000, ge=1, le=1_000_000, alias="maxChars")


class SummaryResponse(BaseModel):
    summary: str


class FlashcardsRequest(DocumentRequest):
    count: int = Field(default=3, ge=1, le=20)


class Flashcard(BaseModel):
    question: str
    answer: str


class FlashcardsResponse(BaseModel):
    flashcards: list[Flashcard]


class QuizRequest(DocumentRequest):
    count: int = Field(default=5, ge=1, le=20)


class QuizQuestion(CamelModel):
    question: str
    options: list[str] = Field(min_length=2)
    correct_index: int = Field(alias="correctIndex")

    @model_validator(mode="after")
    def _check_index(self) -> "QuizQuestion":
        if not 0 <= self.correct_index < len(self.options):
            raise ValueError("correctIndex must point at one of the options")
        return self


class QuizResponse(BaseModel):
    questions: list[QuizQuestion]


class GlossaryTerm(BaseModel):
    term: str
    definition: str


class GlossaryResponse(BaseModel):
    terms: list[GlossaryTerm]


class LearningStep(CamelModel):
    title: str
    description: str
    step_number: int = Field(alias="stepNumber")
    expected_time: str = Field(alias="expectedTime")


class LearningPlanResponse(CamelModel):
    plan_title: str = Field(alias="planTitle")
    steps: list[LearningStep]


__all__ = [
    "DocumentSummary",
    "DocumentListResponse",
    "UploadedDocument",
    "UploadResponse",
    "DeleteResponse",
    "AskRequest",
    "CitationModel",
    "AskResponse",
    "DocumentRequest",
    "SummarizeRequest",
    "SummaryResponse",
    "FlashcardsRequest",
    "Flashcard",
    "FlashcardsResponse",
    "QuizRequest",
    "QuizQuestion",
    "QuizResponse",
    "GlossaryTerm",
    "GlossaryResponse",
    "LearningStep",
    "LearningPlanResponse",
]
