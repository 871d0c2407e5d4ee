"""FastAPI application -- routes for the Notion -> local LLM bridge."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from server import errors
from server.__version__ import __version__
from server.config import Settings
from server.dependencies import get_runtime, get_settings
from server.runtime import Runtime
from server.schemas import (
    AskRequest,
    AskResponse,
    ErrorResponse,
    ReindexRequest,
    ReindexResponse,
    StatusResponse,
)
from server.services import index_service, query_service

logger = logging.getLogger("bridge")

_ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


def _resolve_runtime(app: FastAPI) -> Runtime:
    """Settings/Runtime for startup work, honoring dependency overrides."""
    settings = app.dependency_overrides.get(get_settings, get_settings)()
    runtime_dep = app.dependency_overrides.get(get_runtime)
    return runtime_dep() if runtime_dep else get_runtime(settings)


async def _auto_index(runtime: Runtime, page_ids: List[str]) -> None:
    logger.info("Auto-indexing %d pages from COMMA_SEPARATED_PAGE_IDS...", len(page_ids))
    await index_service.index_pages(page_ids, runtime)
    logger.info("Indexing done.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan: schedule auto-indexing of configured pages; requests are served meanwhile."""
    runtime = _resolve_runtime(app)
    page_ids = list(runtime.settings.default_page_ids or [])
    task: Optional[asyncio.Task] = None
    logger.info("Bridge starting (model %s at %s)", runtime.settings.ollama_model, runtime.settings.ollama_url)
    if page_ids:
        task = asyncio.create_task(_auto_index(runtime, page_ids))
    else:
        logger.info(
            "No pages provided for auto-index (set COMMA_SEPARATED_PAGE_IDS) - POST /reindex with pageIds."
        )
    yield
    if task is not None and not task.done():
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    await runtime.aclose()
    logger.info("Shutdown: complete")


app = FastAPI(title="Notion Bridge", version=__version__, lifespan=lifespan)


# ---- Error mapping ----

@app.exception_handler(errors.ValidationError)
async def validation_error_handler(request: Request, exc: errors.ValidationError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "invalid request", "details": jsonable_encoder(exc.errors())},
    )


# ---- Health (no dependencies, always fast) ----

@app.get("/health")
def health():
    """Minimal health check. No deps, no index access. Always returns immediately."""
    return {"ok": True}


# ---- Status ----

@app.get("/status", response_model=StatusResponse)
def status(runtime: Runtime = Depends(get_runtime)):
    """Chunk/page counts of the in-memory index and whether a rebuild is in flight."""
    return index_service.get_index_status(runtime)


# ---- Reindex ----

@app.post("/reindex", response_model=ReindexResponse, responses={400: {"model": ErrorResponse}})
async def reindex(
    body: Optional[ReindexRequest] = None,
    settings: Settings = Depends(get_settings),
    runtime: Runtime = Depends(get_runtime),
):
    """
    Full rebuild from configured default pages plus pageIds in the body.
    `indexed` counts requested ids, not pages that actually produced chunks.
    """
    requested = body.page_ids if body and body.page_ids else []
    page_ids = list(settings.default_page_ids or []) + [p.strip() for p in requested if p and p.strip()]
    if not page_ids:
        raise errors.ValidationError("no pageIds")

    report = await index_service.index_pages(page_ids, runtime)
    if report.failed:
        logger.warning("Reindex finished with %d failed pages: %s", len(report.failed), report.failed)
    return {"indexed": len(page_ids)}


# ---- Ask ----

@app.post("/ask", response_model=AskResponse, responses=_ERROR_RESPONSES)
async def ask(body: AskRequest, runtime: Runtime = Depends(get_runtime)):
    """
    Retrieve top-K chunks for the query and answer it with the local model.
    topK falls back to DEFAULT_TOP_K from settings.
    """
    top_k = body.top_k if body.top_k is not None else runtime.settings.default_top_k
    try:
        result = await query_service.answer_question(body.query, runtime, top_k=top_k)
    except errors.UpstreamError as e:
        logger.error("Ollama error (%s): %s %s", e.kind, e.message, e.details or "")
        return JSONResponse(status_code=500, content={"error": "ollama error", "details": e.message})
    return AskResponse(answer=result.answer, used_chunks=result.used_chunks)
