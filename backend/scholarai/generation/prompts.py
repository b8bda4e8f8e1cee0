"""Prompt templates for the study tools."""

from __future__ import annotations

from typing import Sequence

from scholarai.models.entities import RetrievalItem

ASK_SYSTEM = """You are ScholarAI, a study assistant. Answer the user using ONLY the provided sources.
If the answer isn't in the sources, say you don't have enough information.
Cite like [{labels}] where relevant. Be concise and helpful."""

SUMMARY_SYSTEM = (
    "Summarize the content into clear bullet points with short headings where helpful. "
    "Include key terms, definitions, formulas, and any dates. Be concise."
)

FLASHCARDS_SYSTEM = """Create {count} study flashcards from the document.
Each flashcard has a short question and a precise answer taken from the text.
Return ONLY JSON like:
{{"flashcards":[{{"question":"...","answer":"..."}}]}}"""

QUIZ_SYSTEM = """Create a multiple-choice quiz with {count} questions from the document.
Every question has exactly 4 options and one correct option.
correctIndex is the 0-based position of the correct option.
Return ONLY JSON like:
{{"questions":[{{"question":"...","options":["...","...","...","..."],"correctIndex":0}}]}}"""

GLOSSARY_SYSTEM = """Extract the key terms of the document with a one-sentence definition each,
using the document's own wording where possible.
Return ONLY JSON like:
{"terms":[{"term":"...","definition":"..."}]}"""

LEARNING_PLAN_SYSTEM = """Design a step-by-step learning plan for mastering the document.
Number the steps from 1 and give each an expected time such as "30 minutes".
Return ONLY JSON like:
{"planTitle":"...","steps":[{"stepNumber":1,"title":"...","description":"...","expectedTime":"..."}]}"""


def ask_system_prompt(source_count: int) -> str:
    labels = ", ".join(str(idx + 1) for idx in range(source_count))
    return ASK_SYSTEM.format(labels=labels)


def format_sources(items: Sequence[RetrievalItem]) -> str:
    """Render retrieved chunks as labelled ``Source N`` blocks."""
    return "\n\n".join(
        f"--- Source {idx + 1} | {item.doc_name} | chunk {item.chunk_id} | score {item.score:.3f} ---\n{item.text}"
        for idx, item in enumerate(items)
    )


def ask_user_prompt(question: str, items: Sequence[RetrievalItem]) -> str:
    return f"QUESTION:\n{question}\n\nSOURCES:\n{format_sources(items)}"


__all__ = [
    "ASK_SYSTEM",
    "SUMMARY_SYSTEM",
    "FLASHCARDS_SYSTEM",
    "QUIZ_SYSTEM",
    "GLOSSARY_SYSTEM",
    "LEARNING_PLAN_SYSTEM",
    "ask_system_prompt",
    "ask_user_prompt",
    "format_sources",
]
