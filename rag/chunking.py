"""
Fixed-size overlapping chunking of extracted page text.

Windows of `size` characters advance by `size - overlap`, so every character
of the input lands in at least one chunk. Each window is trimmed; windows that
are empty after trimming are dropped and do not consume a chunk index.
"""

import hashlib
from typing import List

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200


def chunk_text(
   text: str,
   size: int = DEFAULT_CHUNK_SIZE,
   overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> List[str]:
   """
   Split text into overlapping windows.

   Args:
      text:    Normalized page text
      size:    Window length in characters (> 0)
      overlap: Characters shared with the previous window (0 <= overlap < size)

   Returns:
      Ordered list of trimmed, non-empty chunks
   """
   if size <= 0:
      raise ValueError(f"chunk size must be positive, got {size}")
   if overlap < 0 or overlap >= size:
      raise ValueError(f"overlap must satisfy 0 <= overlap < size, got {overlap} (size={size})")

   step = size - overlap
   chunks: List[str] = []
   offset = 0
   while offset < len(text):
      window = text[offset:offset + size].strip()
      if window:
         chunks.append(window)
      offset += step
   return chunks


def chunk_id(page_id: str, chunk_index: int) -> str:
   """Deterministic id for the chunk_index-th chunk of a page (sha1 of 'page:index')."""
   return hashlib.sha1(f"{page_id}:{chunk_index}".encode("utf-8")).hexdigest()
