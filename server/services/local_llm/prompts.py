"""Prompt assembly for question answering over retrieved note chunks."""

from typing import Iterable

from rag.types import ChunkRecord

PROMPT_HEADER = (
    "You are given the following excerpts from my Notion notes. Use them to answer the question "
    "precisely and cite which page title the info came from when relevant.\n\n"
)


def format_chunk(chunk: ChunkRecord) -> str:
    return f"---\n[{chunk.title}] chunk#{chunk.chunk_index}\n{chunk.content}\n"


def build_prompt(retrieved_chunks: Iterable[ChunkRecord], question: str) -> str:
    """
    Header, one block per chunk (joined so blocks are separated by a blank line),
    then the question. Chunk content is inserted verbatim, `---` included.
    """
    context = "\n".join(format_chunk(c) for c in retrieved_chunks)
    return PROMPT_HEADER + context + f"\n\nQuestion: {question}\nAnswer:"
