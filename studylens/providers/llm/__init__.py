"""LLM provider implementations.

Selection priority (see ``studylens.main._build_llm_provider``):
Anthropic -> OpenAI / OpenAI-compatible -> Ollama (local, always configured).
"""

from studylens.providers.llm.anthropic_provider import AnthropicLLMProvider
from studylens.providers.llm.ollama_provider import OllamaLLMProvider
from studylens.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["AnthropicLLMProvider", "OllamaLLMProvider", "OpenAILLMProvider"]
