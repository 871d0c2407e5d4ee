from dataclasses import dataclass

@dataclass(frozen=True)
class ChunkRecord:
   id: str
   content: str
   title: str
   page_id: str
   chunk_index: int
