"""Configuration for the Notion bridge server."""

import os
from dataclasses import dataclass
from typing import List, Optional


def parse_page_ids(raw: Optional[str]) -> List[str]:
    """Split a comma-separated id list, dropping blanks."""
    if not raw:
        return []
    return [p.strip() for p in raw.split(",") if p.strip()]


@dataclass
class Settings:
    """
    Everything the bridge reads from the environment.

    Every field is overridable at construction for testing; fields left at
    None are filled from the environment in __post_init__.
    """
    notion_token: Optional[str] = None
    ollama_url: Optional[str] = None
    ollama_model: Optional[str] = None
    ollama_timeout_s: float = 120.0
    port: int = 3030
    default_page_ids: Optional[List[str]] = None
    chunk_size: int = 1000
    chunk_overlap: int = 200
    default_top_k: int = 5
    log_level: str = "INFO"

    def __post_init__(self):
        if self.notion_token is None:
            self.notion_token = os.environ.get("NOTION_TOKEN") or None
        if self.ollama_url is None:
            self.ollama_url = os.environ.get("OLLAMA_URL", "http://localhost:11434")
        self.ollama_url = self.ollama_url.rstrip("/")
        if self.ollama_model is None:
            self.ollama_model = os.environ.get("OLLAMA_MODEL", "llama3")
        if self.default_page_ids is None:
            self.default_page_ids = parse_page_ids(os.environ.get("COMMA_SEPARATED_PAGE_IDS"))

        try:
            if v := os.environ.get("OLLAMA_TIMEOUT_S"):
                self.ollama_timeout_s = float(v)
        except ValueError:
            pass
        try:
            if v := os.environ.get("PORT"):
                self.port = int(v)
        except ValueError:
            pass
        try:
            if v := os.environ.get("CHUNK_SIZE"):
                self.chunk_size = max(1, int(v))
        except ValueError:
            pass
        try:
            if v := os.environ.get("CHUNK_OVERLAP"):
                self.chunk_overlap = max(0, int(v))
        except ValueError:
            pass
        try:
            if v := os.environ.get("DEFAULT_TOP_K"):
                self.default_top_k = max(1, int(v))
        except ValueError:
            pass
        if os.environ.get("LOG_LEVEL"):
            self.log_level = os.environ["LOG_LEVEL"].upper()

        if self.chunk_overlap >= self.chunk_size:
            self.chunk_overlap = self.chunk_size // 4
