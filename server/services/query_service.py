"""Ask path: search -> dedupe/top-K -> prompt -> local model."""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from rag.retrieve import DEFAULT_TOP_K, select_top_k
from rag.types import ChunkRecord
from server.errors import ValidationError
from server.services.local_llm.prompts import build_prompt

logger = logging.getLogger("bridge.query")


@dataclass
class AskResult:
    answer: str
    used_chunks: int
    retrieved: List[ChunkRecord] = field(default_factory=list)


async def retrieve_chunks(query: str, runtime, top_k: int = DEFAULT_TOP_K) -> List[ChunkRecord]:
    """Search and select under the index read section."""
    async with runtime.lock.read():
        groups = runtime.index.search(query, limit=top_k)
        return select_top_k(groups, top_k)


async def answer_question(
    query: Optional[str],
    runtime,
    *,
    top_k: int = DEFAULT_TOP_K,
) -> AskResult:
    """
    Answer a question from indexed notes.

    The read section covers search and selection only; the model call runs
    after it is released. UpstreamError from the provider propagates.

    Raises:
        ValidationError: query missing or blank
        UpstreamError:   the model call failed or timed out
    """
    if query is None or not str(query).strip():
        raise ValidationError("query required")
    if top_k < 1:
        raise ValidationError("topK must be >= 1")

    t0 = time.perf_counter()
    retrieved = await retrieve_chunks(query, runtime, top_k)
    search_ms = int((time.perf_counter() - t0) * 1000)

    prompt = build_prompt(retrieved, query)
    t1 = time.perf_counter()
    answer = await runtime.get_provider().complete(prompt)
    completion_ms = int((time.perf_counter() - t1) * 1000)

    logger.info("Answered with %d chunks (search %dms, completion %dms)", len(retrieved), search_ms, completion_ms)
    return AskResult(
        answer=answer,
        used_chunks=len(retrieved),
        retrieved=retrieved,
    )
