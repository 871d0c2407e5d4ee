"""Index rebuild policy: Notion pages -> chunks -> chunk index."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from rag.chunking import chunk_id, chunk_text
from rag.types import ChunkRecord
from server.errors import ExtractionError

logger = logging.getLogger("bridge.index")


class RebuildMode(str, Enum):
    """
    FULL clears the whole index before the pass, so the index ends up holding
    exactly the pages of this call. UPSERT only replaces the chunks of the
    pages in this call; deterministic chunk ids keep re-indexed pages stable.
    """
    FULL = "full"
    UPSERT = "upsert"


class PageOutcome(str, Enum):
    INDEXED = "indexed"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class PageReport:
    page_id: str
    outcome: PageOutcome
    title: Optional[str] = None
    chunks: int = 0
    title_defaulted: bool = False
    skipped_block_types: List[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class IndexReport:
    mode: RebuildMode
    requested: List[str]
    pages: List[PageReport] = field(default_factory=list)

    @property
    def chunk_count(self) -> int:
        return sum(p.chunks for p in self.pages)

    @property
    def indexed(self) -> List[str]:
        return [p.page_id for p in self.pages if p.outcome is PageOutcome.INDEXED]

    @property
    def failed(self) -> List[str]:
        return [p.page_id for p in self.pages if p.outcome is PageOutcome.FAILED]


def build_records(page_id: str, title: str, text: str, size: int, overlap: int) -> List[ChunkRecord]:
    return [
        ChunkRecord(
            id=chunk_id(page_id, i),
            content=chunk,
            title=title,
            page_id=page_id,
            chunk_index=i,
        )
        for i, chunk in enumerate(chunk_text(text, size, overlap))
    ]


async def _index_page(page_id: str, runtime, mode: RebuildMode) -> PageReport:
    settings = runtime.settings
    extractor = runtime.get_extractor()

    lookup = await extractor.lookup_title(page_id)
    rendered = await extractor.extract(page_id)
    report = PageReport(
        page_id=page_id,
        outcome=PageOutcome.EMPTY,
        title=lookup.title,
        title_defaulted=lookup.defaulted,
        skipped_block_types=list(rendered.skipped),
    )

    if mode is RebuildMode.UPSERT:
        runtime.index.remove_page(page_id)
    if not rendered.text:
        return report

    records = build_records(page_id, lookup.title, rendered.text, settings.chunk_size, settings.chunk_overlap)
    for record in records:
        runtime.index.add(record)
    report.outcome = PageOutcome.INDEXED
    report.chunks = len(records)
    logger.info("Indexed page: %s (%s) -> %d chunks", lookup.title, page_id, len(records))
    return report


async def index_pages(
    page_ids: Sequence[str],
    runtime,
    mode: RebuildMode = RebuildMode.FULL,
) -> IndexReport:
    """
    Rebuild the chunk index from Notion pages.

    Runs inside the runtime's write section. Pages are processed one at a
    time; a page that fails to extract is logged and skipped, the rest of the
    batch continues. Pages with no extracted text add nothing.

    Returns:
        IndexReport with one PageReport per requested id
    """
    report = IndexReport(mode=mode, requested=list(page_ids))
    async with runtime.lock.write():
        if mode is RebuildMode.FULL:
            runtime.index.clear()
        for page_id in page_ids:
            try:
                page_report = await _index_page(page_id, runtime, mode)
            except ExtractionError as e:
                logger.warning("Index error for %s: %s", page_id, e.message)
                page_report = PageReport(page_id=page_id, outcome=PageOutcome.FAILED, error=e.message)
            except Exception as e:
                logger.exception("Index error for %s", page_id)
                page_report = PageReport(page_id=page_id, outcome=PageOutcome.FAILED, error=str(e))
            report.pages.append(page_report)

    logger.info(
        "Index pass (%s): %d requested, %d indexed, %d failed, %d chunks",
        mode.value, len(report.requested), len(report.indexed), len(report.failed), len(runtime.index),
    )
    return report


def get_index_status(runtime) -> Dict[str, Any]:
    """Cheap status: counts only, no Notion calls."""
    return {
        "chunks": len(runtime.index),
        "pages": len(runtime.index.page_ids()),
        "indexing": runtime.lock.writing,
    }
