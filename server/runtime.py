from __future__ import annotations

import asyncio
import threading
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional

from extractors.notion_backend import NotionExtractor
from rag.lexical_index import ChunkIndex
from server.services.local_llm.provider import LocalLLMProvider, build_provider

if TYPE_CHECKING:
    from server.config import Settings


class IndexLock:
    """
    Single-writer / multi-reader section around the chunk index.

    Rebuilds hold the write side for the whole clear-then-add pass, so two
    reindex calls never interleave and asks never see a half-built index.
    Waiting writers block new readers.
    """

    def __init__(self):
        self._cond: Optional[asyncio.Condition] = None
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def _condition(self) -> asyncio.Condition:
        if self._cond is None:
            self._cond = asyncio.Condition()
        return self._cond

    @property
    def writing(self) -> bool:
        return self._writer or self._writers_waiting > 0

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        cond = self._condition()
        async with cond:
            await cond.wait_for(lambda: not self._writer and self._writers_waiting == 0)
            self._readers += 1
        try:
            yield
        finally:
            async with cond:
                self._readers -= 1
                cond.notify_all()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        cond = self._condition()
        async with cond:
            self._writers_waiting += 1
            try:
                await cond.wait_for(lambda: not self._writer and self._readers == 0)
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            async with cond:
                self._writer = False
                cond.notify_all()


class Runtime:
    """
    Process-wide runtime for the bridge.

    - Chunk index: owned here, injected into handlers
    - Index lock: guards rebuilds against asks
    - Notion extractor / model provider: built lazily
    """

    def __init__(
        self,
        settings: "Settings",
        *,
        index: Optional[ChunkIndex] = None,
        extractor: Optional[Any] = None,
        provider: Optional[LocalLLMProvider] = None,
    ):
        self.settings = settings
        self.index = index if index is not None else ChunkIndex()
        self.lock = IndexLock()

        self._extractor_lock = threading.Lock()
        self._provider_lock = threading.Lock()
        self._extractor = extractor
        self._provider = provider

    # ----------------------------
    # Extractor
    # ----------------------------
    def get_extractor(self):
        if self._extractor is not None:
            return self._extractor
        with self._extractor_lock:
            if self._extractor is None:
                self._extractor = NotionExtractor.from_token(self.settings.notion_token)
        return self._extractor

    # ----------------------------
    # Provider
    # ----------------------------
    def get_provider(self) -> LocalLLMProvider:
        if self._provider is not None:
            return self._provider
        with self._provider_lock:
            if self._provider is None:
                self._provider = build_provider(self.settings)
        return self._provider

    async def aclose(self) -> None:
        if self._extractor is not None and hasattr(self._extractor, "aclose"):
            await self._extractor.aclose()


def runtime_from_settings(settings: "Settings") -> Runtime:
    """Build Runtime from Settings. Used by get_runtime dependency."""
    return Runtime(settings)
