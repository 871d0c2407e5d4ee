"""Tests for the /ask endpoint."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fastapi.testclient import TestClient
from rag.chunking import chunk_id
from rag.types import ChunkRecord
from server.app import app
from server.config import Settings
from server.dependencies import get_runtime, get_settings
from server.errors import UpstreamError
from server.runtime import Runtime
from server.services.local_llm.prompts import PROMPT_HEADER
from server.services.local_llm.provider import FakeProvider


# ============================================================================
# Helpers
# ============================================================================

def _settings() -> Settings:
    return Settings(notion_token="test", default_page_ids=[])


def _runtime(provider: FakeProvider, records=()) -> Runtime:
    runtime = Runtime(_settings(), provider=provider)
    for r in records:
        runtime.index.add(r)
    return runtime


def _ops_chunk() -> ChunkRecord:
    return ChunkRecord(
        id=chunk_id("ops-page", 0),
        content="Backups run nightly at 02:00 and are copied to the offsite bucket.",
        title="Ops",
        page_id="ops-page",
        chunk_index=0,
    )


def _client(runtime: Runtime) -> TestClient:
    app.dependency_overrides[get_settings] = lambda: runtime.settings
    app.dependency_overrides[get_runtime] = lambda: runtime
    return TestClient(app)


# ============================================================================
# Tests
# ============================================================================

def test_ask_returns_answer_and_used_chunks():
    provider = FakeProvider(canned={"response": "Nightly, to the offsite bucket."})
    runtime = _runtime(provider, [_ops_chunk()])
    try:
        resp = _client(runtime).post("/ask", json={"query": "backups"})
        assert resp.status_code == 200
        assert resp.json() == {"answer": "Nightly, to the offsite bucket.", "usedChunks": 1}
    finally:
        app.dependency_overrides.clear()


def test_ask_sends_prompt_with_retrieved_chunk():
    provider = FakeProvider(canned={"response": "ok"})
    runtime = _runtime(provider, [_ops_chunk()])
    try:
        _client(runtime).post("/ask", json={"query": "backups"})
        assert len(provider.prompts) == 1
        prompt = provider.prompts[0]
        assert prompt.startswith(PROMPT_HEADER)
        assert "---\n[Ops] chunk#0\nBackups run nightly" in prompt
        assert prompt.endswith("\n\nQuestion: backups\nAnswer:")
    finally:
        app.dependency_overrides.clear()


def test_ask_dedupes_chunk_matching_content_and_title():
    record = ChunkRecord(id="only", content="ops rotation schedule", title="Ops", page_id="p", chunk_index=0)
    provider = FakeProvider(canned="plain")
    runtime = _runtime(provider, [record])
    try:
        resp = _client(runtime).post("/ask", json={"query": "ops"})
        assert resp.status_code == 200
        assert resp.json() == {"answer": "plain", "usedChunks": 1}
    finally:
        app.dependency_overrides.clear()


def test_ask_respects_top_k():
    records = [
        ChunkRecord(id=f"c{i}", content=f"deploy step {i}", title="Deploy", page_id="p", chunk_index=i)
        for i in range(10)
    ]
    runtime = _runtime(FakeProvider(canned={"response": "ok"}), records)
    try:
        client = _client(runtime)
        assert client.post("/ask", json={"query": "deploy"}).json()["usedChunks"] == 5
        assert client.post("/ask", json={"query": "deploy", "topK": 2}).json()["usedChunks"] == 2
    finally:
        app.dependency_overrides.clear()


def test_ask_default_top_k_comes_from_settings():
    records = [
        ChunkRecord(id=f"c{i}", content=f"deploy step {i}", title="Deploy", page_id="p", chunk_index=i)
        for i in range(10)
    ]
    runtime = _runtime(FakeProvider(canned={"response": "ok"}), records)
    runtime.settings.default_top_k = 3
    try:
        client = _client(runtime)
        assert client.post("/ask", json={"query": "deploy"}).json()["usedChunks"] == 3
        assert client.post("/ask", json={"query": "deploy", "topK": 7}).json()["usedChunks"] == 7
    finally:
        app.dependency_overrides.clear()


def test_ask_with_empty_index_still_calls_model():
    provider = FakeProvider(canned={"other": 1})
    runtime = _runtime(provider)
    try:
        resp = _client(runtime).post("/ask", json={"query": "anything"})
        assert resp.status_code == 200
        assert resp.json() == {"answer": '{"other": 1}', "usedChunks": 0}
    finally:
        app.dependency_overrides.clear()


def test_ask_missing_query_returns_400():
    provider = FakeProvider()
    runtime = _runtime(provider)
    try:
        client = _client(runtime)
        for body in ({}, {"query": ""}, {"query": "   "}):
            resp = client.post("/ask", json=body)
            assert resp.status_code == 400
            assert resp.json() == {"error": "query required"}
        assert provider.prompts == []
    finally:
        app.dependency_overrides.clear()


def test_ask_invalid_top_k_returns_400():
    runtime = _runtime(FakeProvider())
    try:
        resp = _client(runtime).post("/ask", json={"query": "x", "topK": 0})
        assert resp.status_code == 400
        assert resp.json()["error"] == "invalid request"
    finally:
        app.dependency_overrides.clear()


def test_ask_upstream_failure_returns_500_with_details():
    provider = FakeProvider(error=UpstreamError(kind="timeout", message="Model request timed out"))
    runtime = _runtime(provider, [_ops_chunk()])
    try:
        resp = _client(runtime).post("/ask", json={"query": "backups"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "ollama error", "details": "Model request timed out"}
    finally:
        app.dependency_overrides.clear()
