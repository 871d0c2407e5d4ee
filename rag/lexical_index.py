"""
In-memory lexical index over chunk records.

Each indexed field ("content", then "title") gets its own BM25 model.
A search returns one group per field that produced hits, in field order,
so the same chunk can appear in more than one group.

Query tokens match forward: "backup" hits documents containing "backups".
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

import numpy as np
from rank_bm25 import BM25Plus

from rag.types import ChunkRecord

INDEXED_FIELDS = ("content", "title")

_WORD_RE = re.compile(r"\w+", re.UNICODE)


def tokenize(text: str) -> List[str]:
   """Lowercase word tokens."""
   return _WORD_RE.findall(text.lower())


@dataclass
class SearchGroup:
   field: str
   records: List[ChunkRecord] = field(default_factory=list)


class _FieldModel:
   """BM25 model plus vocabulary for one field, built from a snapshot of records."""

   def __init__(self, records: List[ChunkRecord], field_name: str):
      self.records = records
      self.corpus: List[List[str]] = [tokenize(getattr(r, field_name)) for r in records]
      self.doc_terms: List[Set[str]] = [set(doc) for doc in self.corpus]
      self.vocabulary: List[str] = sorted(set().union(*self.doc_terms)) if self.doc_terms else []
      # BM25Plus idf stays positive when a term is in most chunks
      self.bm25 = BM25Plus(self.corpus) if self.vocabulary else None

   def expand(self, query_tokens: Iterable[str]) -> List[str]:
      terms: List[str] = []
      for token in query_tokens:
         for term in self.vocabulary:
            if term.startswith(token) and term not in terms:
               terms.append(term)
      return terms

   def search(self, query_tokens: List[str], limit: int) -> List[ChunkRecord]:
      if self.bm25 is None:
         return []
      terms = self.expand(query_tokens)
      if not terms:
         return []
      wanted = set(terms)
      candidates = [i for i, doc in enumerate(self.doc_terms) if doc & wanted]
      if not candidates:
         return []

      scores = self.bm25.get_scores(terms)
      cand = np.array(candidates)
      order = np.argsort(-scores[cand], kind="stable")
      return [self.records[int(cand[i])] for i in order[:limit]]


class ChunkIndex:
   """
   Chunk store with free-text search over content and title.

   Records are keyed by id; adding an existing id replaces it in place.
   Models are rebuilt lazily on the first search after a mutation.
   """

   def __init__(self, fields=INDEXED_FIELDS):
      self.fields = tuple(fields)
      self._records: Dict[str, ChunkRecord] = {}
      self._models: Optional[Dict[str, _FieldModel]] = None

   def __len__(self) -> int:
      return len(self._records)

   def get(self, chunk_id: str) -> Optional[ChunkRecord]:
      return self._records.get(chunk_id)

   def records(self) -> List[ChunkRecord]:
      return list(self._records.values())

   def page_ids(self) -> List[str]:
      seen: Dict[str, None] = {}
      for record in self._records.values():
         seen.setdefault(record.page_id, None)
      return list(seen)

   def clear(self) -> None:
      self._records.clear()
      self._models = None

   def add(self, record: ChunkRecord) -> None:
      self._records[record.id] = record
      self._models = None

   def remove_page(self, page_id: str) -> int:
      """Drop every chunk of page_id. Returns how many were removed."""
      doomed = [cid for cid, r in self._records.items() if r.page_id == page_id]
      for cid in doomed:
         del self._records[cid]
      if doomed:
         self._models = None
      return len(doomed)

   def _field_models(self) -> Dict[str, _FieldModel]:
      if self._models is None:
         snapshot = list(self._records.values())
         self._models = {name: _FieldModel(snapshot, name) for name in self.fields}
      return self._models

   def search(self, query: str, limit: int) -> List[SearchGroup]:
      """
      Search every indexed field independently.

      Args:
         query: Free-text query
         limit: Max records per field group

      Returns:
         Groups in field order; fields without hits are omitted
      """
      query_tokens = tokenize(query)
      if not query_tokens or limit <= 0 or not self._records:
         return []

      groups: List[SearchGroup] = []
      for name, model in self._field_models().items():
         hits = model.search(query_tokens, limit)
         if hits:
            groups.append(SearchGroup(field=name, records=hits))
      return groups
