"""Text generation through the Gemini ``generateContent`` REST endpoint."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from taskboard_api.common.logging import log_context
from taskboard_api.core.errors import UpstreamUnavailable
from taskboard_api.settings import Settings

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    async def complete(self, prompt: str) -> str: ...


class GeminiTextGenerator:
    def __init__(
        self,
        *,
        api_key: str | None,
        model: str,
        base_url: str,
        timeout: float = 30.0,
        temperature: float = 0.7,
        max_output_tokens: int = 800,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> GeminiTextGenerator:
        return cls(
            api_key=settings.ai_api_key.get_secret_value() if settings.ai_api_key else None,
            model=settings.ai_model,
            base_url=settings.ai_base_url,
            timeout=settings.ai_timeout.total_seconds(),
        )

    async def complete(self, prompt: str) -> str:
        if not self._api_key:
            raise UpstreamUnavailable("Text generation is not configured")

        url = f"{self._base_url}/models/{self._model}:generateContent"
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self._temperature,
                "maxOutputTokens": self._max_output_tokens,
            },
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(url, params={"key": self._api_key}, json=body)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "text_generation.failed",
                extra=log_context(model=self._model, exception_type=type(exc).__name__),
            )
            raise UpstreamUnavailable("Text generation failed") from exc

        text = _first_candidate_text(data)
        if text is None:
            raise UpstreamUnavailable("Text generation returned no content")
        return text


def _first_candidate_text(data: Any) -> str | None:
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return None
    texts = [part.get("text", "") for part in parts if isinstance(part, dict)]
    joined = "".join(texts).strip()
    return joined or None


__all__ = ["GeminiTextGenerator", "TextGenerator"]
