"""
Top-K selection over per-field search groups.

The index scores content and title separately, so one chunk can come back
in several groups. Groups are flattened in the order the index returns them,
then deduplicated by chunk id (first appearance wins) and cut to top_k.
"""

from typing import Iterable, List

from rag.lexical_index import SearchGroup
from rag.types import ChunkRecord

DEFAULT_TOP_K = 5


def flatten_groups(groups: Iterable[SearchGroup]) -> List[ChunkRecord]:
   docs: List[ChunkRecord] = []
   for group in groups:
      for record in group.records:
         if record is not None:
            docs.append(record)
   return docs


def select_top_k(groups: Iterable[SearchGroup], top_k: int = DEFAULT_TOP_K) -> List[ChunkRecord]:
   """
   Deduplicate flattened search hits and keep the first top_k.

   Args:
      groups: Search groups from ChunkIndex.search
      top_k:  Max distinct chunks to keep

   Returns:
      Distinct records in first-seen order, len <= top_k
   """
   seen = set()
   retrieved: List[ChunkRecord] = []
   if top_k <= 0:
      return retrieved
   for record in flatten_groups(groups):
      if not record.id or record.id in seen:
         continue
      seen.add(record.id)
      retrieved.append(record)
      if len(retrieved) >= top_k:
         break
   return retrieved
