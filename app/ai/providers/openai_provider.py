from __future__ import annotations

import logging
from typing import Sequence

from openai import AsyncOpenAI, OpenAIError

from app.ai.types import ChatMessage
from app.core.errors import ProviderError

logger = logging.getLogger(__name__)


class OpenAIProvider:
    """Chat-completion client for OpenAI and OpenAI-compatible endpoints such as Groq."""

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: str | None = None,
        timeout_s: float = 60.0,
        max_retries: int = 0,
        temperature: float = 0.2,
        max_output_tokens: int = 2048,
        provider_name: str = "openai",
    ):
        self._model = model
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        self._provider_name = provider_name
        if not api_key.strip():
            raise ProviderError("API key is missing", code="provider_not_configured")

        self._client = AsyncOpenAI(
            api_key=api_key.strip(),
            base_url=base_url or None,
            timeout=timeout_s,
            max_retries=max_retries,
        )

    async def complete(self, messages: Sequence[ChatMessage]) -> str:
        payload = [{"role": m.role, "content": m.content} for m in messages]

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=payload,
                temperature=self._temperature,
                max_tokens=self._max_output_tokens,
            )
        except OpenAIError as exc:
            logger.warning(
                "llm_completion_failed provider=%s model=%s: %s",
                self._provider_name,
                self._model,
                exc,
            )
            raise ProviderError(str(exc) or exc.__class__.__name__) from exc

        content = response.choices[0].message.content if response.choices else ""
        return content or ""
