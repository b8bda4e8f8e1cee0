"""Generation adapters: bounded prompt assembly around the completion service.

None of the adapters keep state between calls. Structured adapters ask for a
single JSON object and parse the reply strictly; anything that does not parse
or does not match the expected shape is reported as ``MalformedModelOutput``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeVar

import orjson
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from scholarai.core.errors import EmptyDocument, MalformedModelOutput
from scholarai.core.logging import get_logger
from scholarai.generation import prompts
from scholarai.generation.completion import CompletionService
from scholarai.models.dto import (
    Flashcard,
    FlashcardsResponse,
    GlossaryResponse,
    GlossaryTerm,
    LearningPlanResponse,
    QuizQuestion,
    QuizResponse,
)
from scholarai.models.entities import Citation, Document, RetrievalResult

logger = get_logger(__name__)

SUMMARY_MAX_CHARS = 100_000
STUDY_TOOL_MAX_CHARS = 12_000

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(slots=True)
class AskAnswer:
    answer: str
    citations: list[Citation]
    truncated: bool = False


def bounded_text(document: Document, max_chars: int) -> str:
    """Join a document's chunks in order, stopping at ``max_chars``."""
    parts: list[str] = []
    length = 0
    for chunk in document.chunks:
        if length >= max_chars:
            break
        piece = ("\n\n" if parts else "") + chunk.text
        piece = piece[: max_chars - length]
        parts.append(piece)
        length += len(piece)
    return "".join(parts)


def _require_text(document: Document, max_chars: int) -> str:
    text = bounded_text(document, max_chars)
    if not text.strip():
        raise EmptyDocument()
    return text


def parse_structured(raw: str, model: type[ModelT]) -> ModelT:
    """Parse a JSON reply into ``model`` without any repair attempts."""
    try:
        payload = orjson.loads(raw)
    except orjson.JSONDecodeError as exc:
        logger.warning("Model returned invalid JSON: %s", exc)
        raise MalformedModelOutput() from exc
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        logger.warning("Model JSON did not match %s: %s", model.__name__, exc.errors()[:3])
        raise MalformedModelOutput(f"Model output did not match the expected {model.__name__} shape") from exc


async def ask(service: CompletionService, question: str, result: RetrievalResult) -> AskAnswer:
    items = result.items
    answer = await service.complete(
        prompts.ask_system_prompt(len(items)),
        prompts.ask_user_prompt(question, items),
        temperature=0.2,
    )
    return AskAnswer(answer=answer, citations=Citation.from_items(items), truncated=result.truncated)


async def summarize(service: CompletionService, document: Document, max_chars: int = SUMMARY_MAX_CHARS) -> str:
    text = _require_text(document, max_chars)
    return await service.complete(prompts.SUMMARY_SYSTEM, text, temperature=0.3)


async def flashcards(
    service: CompletionService,
    document: Document,
    count: int = 3,
    max_chars: int = STUDY_TOOL_MAX_CHARS,
) -> list[Flashcard]:
    text = _require_text(document, max_chars)
    raw = await service.complete(prompts.FLASHCARDS_SYSTEM.format(count=count), text, json_mode=True)
    return parse_structured(raw, FlashcardsResponse).flashcards[:count]


async def quiz(
    service: CompletionService,
    document: Document,
    count: int = 5,
    max_chars: int = STUDY_TOOL_MAX_CHARS,
) -> list[QuizQuestion]:
    text = _require_text(document, max_chars)
    raw = await service.complete(prompts.QUIZ_SYSTEM.format(count=count), text, json_mode=True)
    return parse_structured(raw, QuizResponse).questions[:count]


async def glossary(
    service: CompletionService,
    document: Document,
    max_chars: int = STUDY_TOOL_MAX_CHARS,
) -> list[GlossaryTerm]:
    text = _require_text(document, max_chars)
    raw = await service.complete(prompts.GLOSSARY_SYSTEM, text, json_mode=True)
    return parse_structured(raw, GlossaryResponse).terms


async def learning_plan(
    service: CompletionService,
    document: Document,
    max_chars: int = STUDY_TOOL_MAX_CHARS,
) -> LearningPlanResponse:
    text = _require_text(document, max_chars)
    raw = await service.complete(prompts.LEARNING_PLAN_SYSTEM, text, json_mode=True)
    return parse_structured(raw, LearningPlanResponse)


__all__ = [
    "AskAnswer",
    "bounded_text",
    "parse_structured",
    "ask",
    "summarize",
    "flashcards",
    "quiz",
    "glossary",
    "learning_plan",
    "SUMMARY_MAX_CHARS",
    "STUDY_TOOL_MAX_CHARS",
]
