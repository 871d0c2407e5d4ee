"""Local LLM access for answering questions. Ollama over HTTP, no paid APIs."""

from server.services.local_llm.provider import (
    FakeProvider,
    LocalLLMProvider,
    OllamaProvider,
    build_provider,
    normalize_response,
)
from server.services.local_llm.prompts import (
    PROMPT_HEADER,
    build_prompt,
)

__all__ = [
    "FakeProvider",
    "LocalLLMProvider",
    "OllamaProvider",
    "PROMPT_HEADER",
    "build_prompt",
    "build_provider",
    "normalize_response",
]
