"""Tests for environment-driven Settings."""

import os
import sys
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from server.config import Settings, parse_page_ids


def test_defaults():
    with patch.dict(os.environ, {}, clear=True):
        s = Settings()
    assert s.notion_token is None
    assert s.ollama_url == "http://localhost:11434"
    assert s.ollama_model == "llama3"
    assert s.ollama_timeout_s == 120.0
    assert s.port == 3030
    assert s.default_page_ids == []
    assert (s.chunk_size, s.chunk_overlap) == (1000, 200)
    assert s.default_top_k == 5


def test_env_overrides():
    env = {
        "NOTION_TOKEN": "secret_abc",
        "OLLAMA_URL": "http://gpu-box:11434/",
        "OLLAMA_MODEL": "mistral",
        "OLLAMA_TIMEOUT_S": "30",
        "PORT": "8080",
        "COMMA_SEPARATED_PAGE_IDS": "a, b,,c ",
        "LOG_LEVEL": "debug",
    }
    with patch.dict(os.environ, env, clear=True):
        s = Settings()
    assert s.notion_token == "secret_abc"
    assert s.ollama_url == "http://gpu-box:11434"
    assert s.ollama_model == "mistral"
    assert s.ollama_timeout_s == 30.0
    assert s.port == 8080
    assert s.default_page_ids == ["a", "b", "c"]
    assert s.log_level == "DEBUG"


def test_malformed_numbers_keep_defaults():
    with patch.dict(os.environ, {"PORT": "not-a-port", "OLLAMA_TIMEOUT_S": "soon"}, clear=True):
        s = Settings()
    assert s.port == 3030
    assert s.ollama_timeout_s == 120.0


def test_overlap_not_smaller_than_size_is_reset():
    with patch.dict(os.environ, {}, clear=True):
        s = Settings(chunk_size=400, chunk_overlap=400)
    assert s.chunk_overlap == 100


def test_explicit_page_ids_skip_env():
    with patch.dict(os.environ, {"COMMA_SEPARATED_PAGE_IDS": "x,y"}, clear=True):
        assert Settings(default_page_ids=["z"]).default_page_ids == ["z"]


def test_parse_page_ids():
    assert parse_page_ids(None) == []
    assert parse_page_ids("") == []
    assert parse_page_ids(" p1 ,p2,") == ["p1", "p2"]
