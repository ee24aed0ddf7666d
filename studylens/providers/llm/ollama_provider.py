"""Ollama local LLM provider adapter.

Ollama serves an OpenAI-compatible API under ``/v1``, so this adapter
reuses the ``openai`` SDK pointed at the local server.  It is the provider
of last resort when no hosted API key is configured.
"""

from __future__ import annotations

import httpx
import openai
import structlog

from studylens.config.settings import Settings
from studylens.interfaces.llm_provider import ILLMProvider
from studylens.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)


class OllamaLLMProvider(ILLMProvider):
    """LLM provider backed by a local Ollama server."""

    def __init__(self, settings: Settings) -> None:
        self._base_url = settings.ollama_base_url
        self._client = openai.AsyncOpenAI(
            base_url=f"{self._base_url.rstrip('/')}/v1",
            # Ollama ignores the key, but the SDK requires a non-empty value.
            api_key="ollama",
        )
        self._text_model = settings.ollama_model

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4000,
    ) -> str:
        """Generate a text completion via Ollama's OpenAI-compatible API."""
        try:
            response = await self._client.chat.completions.create(
                model=self._text_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
            content = response.choices[0].message.content
            if not content:
                raise LLMError(
                    message="Ollama returned empty response",
                    provider_name=self.get_provider_name(),
                )
            logger.info("ollama_completion", model=self._text_model)
            return content
        except openai.APIError as exc:
            raise LLMError(
                message=f"Ollama API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def is_available(self) -> bool:
        """Return ``True`` if the Ollama base URL is configured."""
        return bool(self._base_url)

    async def validate_credentials(self) -> bool:
        """Check the Ollama server is running via its native /api/tags endpoint."""
        if not self.is_available():
            return False
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.get(f"{self._base_url.rstrip('/')}/api/tags")
                return response.status_code == 200
        except httpx.HTTPError:
            return False

    def get_provider_name(self) -> str:
        return "ollama"

    @property
    def model_name(self) -> str:
        return self._text_model

    async def close(self) -> None:
        await self._client.close()
