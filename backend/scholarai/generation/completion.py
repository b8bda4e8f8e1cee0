"""Completion service adapters."""

from __future__ import annotations

from typing import Protocol

from openai import AsyncOpenAI, OpenAIError

from scholarai.core.errors import ServiceFailure
from scholarai.core.logging import get_logger

logger = get_logger(__name__)


class CompletionService(Protocol):
    """Text in, text out."""

    async def complete(
        self,
        system: str,
        user: str,
        temperature: float | None = None,
        json_mode: bool = False,
    ) -> str: ...


class OpenAICompletionService:
    """Chat completions from the OpenAI API."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", client: AsyncOpenAI | None = None) -> None:
        self.model = model
        self._client = client or AsyncOpenAI(api_key=api_key)

    async def complete(
        self,
        system: str,
        user: str,
        temperature: float | None = None,
        json_mode: bool = False,
    ) -> str:
        kwargs: dict[str, object] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        }
        if temperature is not None:
            kwargs["temperature"] = temperature
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            response = await self._client.chat.completions.create(**kwargs)
        except OpenAIError as exc:
            logger.error("Completion request failed: %s", exc)
            raise ServiceFailure(f"Completion service error: {exc}") from exc
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


__all__ = ["CompletionService", "OpenAICompletionService"]
