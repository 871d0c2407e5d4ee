"""
Notion backend: page blocks -> flat text.

Fetches every page of child blocks through the Notion SDK (cursor
pagination, 100 per call), then renders the recognized block types:

  - paragraph, heading_1..3        : rich text + blank line
  - bulleted/numbered list, to_do  : rich text + newline
  - code                           : rich text + blank line

Other block types are skipped. The skip is silent for callers but recorded
on RenderedBlocks so tests and logs can tell the difference.

Usage:
  extractor = NotionExtractor.from_token(token)
  text = await extractor.extract_text(page_id)
  title = await extractor.get_title(page_id)
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx
from notion_client import AsyncClient
from notion_client.errors import HTTPResponseError, RequestTimeoutError

from server.errors import ExtractionError, TitleLookupError

logger = logging.getLogger("bridge.notion")

UNTITLED = "Untitled"
PAGE_SIZE = 100

BLOCK_SEPARATORS = {
    "paragraph": "\n\n",
    "heading_1": "\n\n",
    "heading_2": "\n\n",
    "heading_3": "\n\n",
    "bulleted_list_item": "\n",
    "numbered_list_item": "\n",
    "to_do": "\n",
    "code": "\n\n",
}

_NOTION_ERRORS = (HTTPResponseError, RequestTimeoutError, httpx.HTTPError)


class TitleSource(str, Enum):
    PROPERTY = "property"
    DEFAULTED = "defaulted"


@dataclass(frozen=True)
class TitleLookup:
    title: str
    source: TitleSource
    error: Optional[str] = None

    @property
    def defaulted(self) -> bool:
        return self.source is TitleSource.DEFAULTED


@dataclass
class RenderedBlocks:
    text: str
    rendered: int = 0
    skipped: List[str] = field(default_factory=list)


def rich_text_plain(runs: List[Dict[str, Any]]) -> str:
    return "".join((r or {}).get("plain_text") or "" for r in runs or [])


def render_blocks(blocks: List[Dict[str, Any]]) -> RenderedBlocks:
    """Concatenate recognized blocks into trimmed text."""
    parts: List[str] = []
    rendered = 0
    skipped: List[str] = []
    for block in blocks:
        block_type = block.get("type")
        sep = BLOCK_SEPARATORS.get(block_type)
        if sep is None:
            skipped.append(str(block_type))
            continue
        body = block.get(block_type) or {}
        parts.append(rich_text_plain(body.get("rich_text")) + sep)
        rendered += 1
    return RenderedBlocks(text="".join(parts).strip(), rendered=rendered, skipped=skipped)


def title_from_properties(properties: Dict[str, Any]) -> Optional[str]:
    """Plain text of the first non-empty title property, or None."""
    for prop in (properties or {}).values():
        if prop.get("type") == "title" and isinstance(prop.get("title"), list) and prop["title"]:
            return rich_text_plain(prop["title"]) or None
    return None


class NotionExtractor:
    """Reads page titles and block text through a Notion SDK client."""

    def __init__(self, client, page_size: int = PAGE_SIZE):
        self.client = client
        self.page_size = page_size

    @classmethod
    def from_token(cls, token: Optional[str]) -> "NotionExtractor":
        return cls(AsyncClient(auth=token))

    async def aclose(self) -> None:
        close = getattr(self.client, "aclose", None)
        if close is not None:
            await close()

    async def fetch_blocks(self, page_id: str) -> List[Dict[str, Any]]:
        """All child blocks of a page, following next_cursor until has_more is false."""
        blocks: List[Dict[str, Any]] = []
        cursor: Optional[str] = None
        while True:
            kwargs: Dict[str, Any] = {"block_id": page_id, "page_size": self.page_size}
            if cursor:
                kwargs["start_cursor"] = cursor
            try:
                resp = await self.client.blocks.children.list(**kwargs)
            except _NOTION_ERRORS as e:
                raise ExtractionError(page_id, str(e)) from e
            blocks.extend(resp.get("results", []))
            cursor = resp.get("next_cursor") if resp.get("has_more") else None
            if not cursor:
                return blocks

    async def extract(self, page_id: str) -> RenderedBlocks:
        rendered = render_blocks(await self.fetch_blocks(page_id))
        if rendered.skipped:
            logger.debug("Skipped %d unsupported blocks in %s: %s",
                         len(rendered.skipped), page_id, sorted(set(rendered.skipped)))
        return rendered

    async def extract_text(self, page_id: str) -> str:
        return (await self.extract(page_id)).text

    async def _retrieve_title(self, page_id: str) -> Optional[str]:
        # Any failure here, including a malformed payload, only costs the title.
        try:
            page = await self.client.pages.retrieve(page_id=page_id)
            return title_from_properties(page.get("properties") or {})
        except Exception as e:
            raise TitleLookupError(str(e) or type(e).__name__) from e

    async def lookup_title(self, page_id: str) -> TitleLookup:
        """Page title, or the Untitled sentinel. Lookup failures are never raised."""
        try:
            title = await self._retrieve_title(page_id)
        except TitleLookupError as e:
            logger.debug("Title lookup failed for %s: %s", page_id, e)
            return TitleLookup(title=UNTITLED, source=TitleSource.DEFAULTED, error=str(e))
        if not title:
            return TitleLookup(title=UNTITLED, source=TitleSource.DEFAULTED)
        return TitleLookup(title=title, source=TitleSource.PROPERTY)

    async def get_title(self, page_id: str) -> str:
        return (await self.lookup_title(page_id)).title


# -------------------------------------------------------------------
# Test double
# -------------------------------------------------------------------
class _Namespace:
    def __init__(self, **kwargs):
        self.__dict__.update(kwargs)


class FakeNotionClient:
    """
    In-memory stand-in for notion_client.AsyncClient.

    pages:  {page_id: [block, ...]}
    titles: {page_id: "Title"}  (missing -> no title property)
    errors: {page_id: Exception} raised from blocks.children.list
    title_errors: {page_id: Exception} raised from pages.retrieve
    delay:  seconds awaited before every call; calls always yield to the loop
    """

    def __init__(self, pages=None, titles=None, errors=None, title_errors=None, delay: float = 0.0):
        self.page_blocks: Dict[str, List[Dict[str, Any]]] = dict(pages or {})
        self.titles: Dict[str, str] = dict(titles or {})
        self.errors: Dict[str, Exception] = dict(errors or {})
        self.title_errors: Dict[str, Exception] = dict(title_errors or {})
        self.delay = delay
        self.list_calls: List[Dict[str, Any]] = []
        self.blocks = _Namespace(children=_Namespace(list=self._list_children))
        self.pages = _Namespace(retrieve=self._retrieve_page)

    async def _list_children(self, block_id: str, start_cursor: Optional[str] = None, page_size: int = PAGE_SIZE):
        self.list_calls.append({"block_id": block_id, "start_cursor": start_cursor, "page_size": page_size})
        await asyncio.sleep(self.delay)
        if block_id in self.errors:
            raise self.errors[block_id]
        blocks = self.page_blocks.get(block_id, [])
        start = int(start_cursor) if start_cursor else 0
        end = start + page_size
        has_more = end < len(blocks)
        return {
            "object": "list",
            "results": blocks[start:end],
            "has_more": has_more,
            "next_cursor": str(end) if has_more else None,
        }

    async def _retrieve_page(self, page_id: str):
        await asyncio.sleep(self.delay)
        if page_id in self.title_errors:
            raise self.title_errors[page_id]
        props: Dict[str, Any] = {}
        if page_id in self.titles:
            props["Name"] = {
                "id": "title",
                "type": "title",
                "title": [{"type": "text", "plain_text": self.titles[page_id]}],
            }
        return {"object": "page", "id": page_id, "properties": props}


def text_block(block_type: str, text: str) -> Dict[str, Any]:
    """Build a minimal Notion block payload (used by tests and fixtures)."""
    return {
        "object": "block",
        "type": block_type,
        block_type: {"rich_text": [{"type": "text", "plain_text": text}]},
    }
