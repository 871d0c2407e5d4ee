"""Local LLM provider interface. Ollama /api/generate, single request/response."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import httpx

from server.errors import UpstreamError

logger = logging.getLogger("bridge.local_llm")


def normalize_response(body: Any) -> str:
    """
    Collapse a model server body into answer text.

    The response shape is not strictly contracted, so in order:
    a truthy `response` field, the body itself when it is a string,
    else the JSON dump of the whole body.
    """
    if isinstance(body, dict) and body.get("response"):
        return body["response"]
    if isinstance(body, str):
        return body
    return json.dumps(body)


class LocalLLMProvider(ABC):
    """Abstract provider for prompt completion."""

    name: str = "base"

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """Return the model's answer text or raise UpstreamError."""
        ...

    @abstractmethod
    async def test_connection(self) -> tuple[bool, str]:
        """Test if provider is available. Returns (ok, message)."""
        ...


class OllamaProvider(LocalLLMProvider):
    """Ollama HTTP API provider."""

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "llama3",
        timeout_s: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout_s = timeout_s
        self.transport = transport
        self.name = "ollama"

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self.transport)

    async def complete(self, prompt: str) -> str:
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
        }
        try:
            async with self._client(self.timeout_s) as client:
                resp = await client.post(f"{self.base_url}/api/generate", json=payload)
        except httpx.TimeoutException as e:
            raise UpstreamError(kind="timeout", message="Model request timed out", details={"error": str(e)})
        except httpx.ConnectError as e:
            raise UpstreamError(kind="unavailable", message="Cannot connect to Ollama", details={"error": str(e)})
        except httpx.HTTPError as e:
            logger.exception("Ollama request failed")
            raise UpstreamError(kind="provider_error", message="Model request failed", details={"error": str(e)})
        if not resp.is_success:
            raise UpstreamError(
                kind="provider_error",
                message=f"Ollama returned {resp.status_code}",
                details={"status": resp.status_code, "body": resp.text[:200]},
            )
        try:
            body = resp.json()
        except ValueError:
            body = resp.text
        return normalize_response(body)

    async def test_connection(self) -> tuple[bool, str]:
        try:
            async with self._client(5) as client:
                resp = await client.get(f"{self.base_url}/api/tags")
            if resp.status_code == 200:
                return True, "Ollama available"
            return False, f"Ollama returned {resp.status_code}"
        except httpx.ConnectError:
            return False, "Ollama not detected. Install and run: ollama serve"
        except httpx.HTTPError as e:
            return False, str(e)


class FakeProvider(LocalLLMProvider):
    """Test double: returns canned bodies (normalized like Ollama's) and records prompts."""

    def __init__(self, canned: Any = "ok", error: Optional[UpstreamError] = None):
        self.canned = canned
        self.error = error
        self.prompts: List[str] = []
        self.name = "fake"

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return normalize_response(self.canned)

    async def test_connection(self) -> tuple[bool, str]:
        if self.error and self.error.kind == "unavailable":
            return False, "Fake unavailable"
        return True, "Fake OK"


def build_provider(settings) -> LocalLLMProvider:
    """Provider configured from Settings."""
    return OllamaProvider(
        base_url=getattr(settings, "ollama_url", "http://localhost:11434"),
        model=getattr(settings, "ollama_model", "llama3"),
        timeout_s=getattr(settings, "ollama_timeout_s", 120.0),
    )
