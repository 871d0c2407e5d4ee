"""Tests for the Ollama completion client."""

import asyncio
import json
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import httpx
import pytest

from server.config import Settings
from server.errors import UpstreamError
from server.services.local_llm.provider import (
    FakeProvider,
    OllamaProvider,
    build_provider,
    normalize_response,
)


def _provider(handler, **kwargs) -> OllamaProvider:
    return OllamaProvider(
        base_url="http://ollama.test/",
        model="llama3",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_normalize_response_field():
    assert normalize_response({"response": "X"}) == "X"


def test_normalize_plain_string():
    assert normalize_response("Y") == "Y"


def test_normalize_falls_back_to_json_dump():
    assert normalize_response({"other": 1}) == json.dumps({"other": 1})
    assert json.loads(normalize_response({"response": ""})) == {"response": ""}


def test_complete_posts_generate_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "Backups run nightly.", "done": True})

    answer = asyncio.run(_provider(handler).complete("the prompt"))
    assert answer == "Backups run nightly."
    assert seen["url"] == "http://ollama.test/api/generate"
    assert seen["body"] == {"model": "llama3", "prompt": "the prompt", "stream": False}


def test_complete_returns_raw_text_when_body_not_json():
    def handler(request):
        return httpx.Response(200, text="plain answer")

    assert asyncio.run(_provider(handler).complete("p")) == "plain answer"


def test_complete_json_string_body():
    def handler(request):
        return httpx.Response(200, json="quoted answer")

    assert asyncio.run(_provider(handler).complete("p")) == "quoted answer"


def test_complete_unexpected_shape_is_stringified():
    def handler(request):
        return httpx.Response(200, json={"other": 1})

    assert asyncio.run(_provider(handler).complete("p")) == '{"other": 1}'


def test_timeout_raises_upstream_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(UpstreamError) as exc:
        asyncio.run(_provider(handler).complete("p"))
    assert exc.value.kind == "timeout"


def test_connect_error_raises_unavailable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamError) as exc:
        asyncio.run(_provider(handler).complete("p"))
    assert exc.value.kind == "unavailable"


def test_error_status_raises_provider_error():
    def handler(request):
        return httpx.Response(404, json={"error": "model 'llama3' not found"})

    with pytest.raises(UpstreamError) as exc:
        asyncio.run(_provider(handler).complete("p"))
    assert exc.value.kind == "provider_error"
    assert exc.value.details["status"] == 404
    assert "404" in str(exc.value)


def test_test_connection_reports_availability():
    def ok(request):
        return httpx.Response(200, json={"models": []})

    def down(request):
        raise httpx.ConnectError("refused", request=request)

    assert asyncio.run(_provider(ok).test_connection())[0] is True
    assert asyncio.run(_provider(down).test_connection())[0] is False


def test_build_provider_uses_settings():
    settings = Settings(ollama_url="http://gpu-box:11434/", ollama_model="mistral", ollama_timeout_s=30)
    provider = build_provider(settings)
    assert provider.base_url == "http://gpu-box:11434"
    assert provider.model == "mistral"
    assert provider.timeout_s == 30


def test_default_timeout_is_120_seconds():
    assert OllamaProvider().timeout_s == 120.0


def test_fake_provider_records_prompts_and_normalizes():
    provider = FakeProvider(canned={"response": "hi"})
    assert asyncio.run(provider.complete("p1")) == "hi"
    assert provider.prompts == ["p1"]


def test_fake_provider_raises_configured_error():
    provider = FakeProvider(error=UpstreamError(kind="unavailable", message="Ollama not running"))
    with pytest.raises(UpstreamError):
        asyncio.run(provider.complete("p"))
    assert asyncio.run(provider.test_connection())[0] is False
