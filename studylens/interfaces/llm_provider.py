"""Abstract base class for LLM service providers.

Defines the contract for the large-language-model backend that turns an
assembled study context into predicted topics and questions.
Implementations wrap the Anthropic API, OpenAI (and OpenAI-compatible
endpoints such as Gemini), or a local Ollama server.
"""

from __future__ import annotations

# ABC = Abstract Base Class - Python's way of defining interfaces.
# abstractmethod marks methods that MUST be overridden by concrete classes.
from abc import ABC, abstractmethod


# Concrete implementations: AnthropicLLMProvider, OpenAILLMProvider, OllamaLLMProvider
# Located in: studylens/providers/llm/
class ILLMProvider(ABC):
    """Contract for the text-generation provider used by the prediction engine."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4000,
    ) -> str:
        """Generate a text completion from the model.

        Parameters
        ----------
        system_prompt:
            The system/instruction message that sets the model's behaviour.
        user_prompt:
            The user-facing prompt containing the actual request or data.
        temperature:
            Sampling temperature (0.0 = deterministic, 1.0 = creative).
        max_tokens:
            Upper bound on the number of tokens in the response.

        Returns
        -------
        str
            The model's text response.

        Raises
        ------
        studylens.utils.errors.LLMError
            If the API call fails or returns an empty response.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai-gpt-4o-mini"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured.

        Checks credentials are present without making an inference call.
        """

    async def validate_credentials(self) -> bool:
        """Make a lightweight call confirming the provider accepts requests.

        Unlike :meth:`is_available`, this contacts the remote service.
        Called once at startup by main.py.
        """
        return self.is_available()

    @property
    def model_name(self) -> str:
        """Model identifier recorded in analysis metadata."""
        return self.get_provider_name()

    async def close(self) -> None:
        """Release the underlying HTTP client; default is a no-op."""
