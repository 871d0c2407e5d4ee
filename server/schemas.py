"""Pydantic request/response schemas for the bridge API. Wire names are camelCase."""

from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field


# ---- Reindex ----

class ReindexRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page_ids: Optional[List[str]] = Field(default=None, alias="pageIds")


class ReindexResponse(BaseModel):
    indexed: int


# ---- Ask ----

class AskRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: Optional[str] = None
    top_k: Optional[int] = Field(default=None, ge=1, alias="topK")


class AskResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    answer: str
    used_chunks: int = Field(..., alias="usedChunks")


# ---- Status ----

class StatusResponse(BaseModel):
    chunks: int
    pages: int
    indexing: bool


# ---- Errors ----

class ErrorResponse(BaseModel):
    error: str
    details: Optional[Any] = None
