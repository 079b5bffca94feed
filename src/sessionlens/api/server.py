"""FastAPI HTTP surface for the batch pipeline.

The caller's user id arrives in the ``X-User-Id`` header; authenticating
it is the job of whatever sits in front of this service.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from sessionlens import __version__
from sessionlens.config.settings import Settings
from sessionlens.domain.models import (
    BatchProcessingOptions,
    BatchProcessingResult,
    BatchReport,
    BatchStatus,
    SessionSummaryView,
)
from sessionlens.errors import PipelineError
from sessionlens.pipeline.factory import build_pipeline
from sessionlens.pipeline.service import BatchPipeline

logger = logging.getLogger(__name__)


class HealthStatus(BaseModel):
    status: str = "ok"
    inference_configured: bool = False
    version: str = __version__


def create_app(
    pipeline: BatchPipeline | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    When no pipeline is given, one is built from ``settings`` at startup
    and closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = app.state.pipeline is None
        if owned:
            app.state.pipeline = build_pipeline(settings or Settings())
        logger.info("sessionlens API started (inference configured: %s)",
                    app.state.pipeline.inference_configured)
        yield
        if owned:
            await app.state.pipeline.close()
        logger.info("sessionlens API stopped")

    app = FastAPI(
        title="sessionlens",
        description="Batch screenshot analysis and session summaries",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.pipeline = pipeline

    @app.exception_handler(PipelineError)
    async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
        if exc.user_visible:
            return JSONResponse(status_code=404, content={"detail": str(exc)})
        logger.warning("Request %s failed: %s", request.url.path, exc)
        return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable"})

    def get_pipeline(request: Request) -> BatchPipeline:
        return request.app.state.pipeline

    @app.get("/health")
    async def health_check(p: BatchPipeline = Depends(get_pipeline)) -> HealthStatus:
        return HealthStatus(inference_configured=p.inference_configured if p else False)

    @app.post("/sessions/{session_id}/batches")
    async def process_batch(
        session_id: str,
        options: BatchProcessingOptions | None = None,
        user_id: str = Header(alias="X-User-Id"),
        p: BatchPipeline = Depends(get_pipeline),
    ) -> BatchProcessingResult:
        return await p.trigger_batch_processing(user_id, session_id, options)

    @app.get("/sessions/{session_id}/batches")
    async def list_batches(
        session_id: str,
        limit: int = Query(default=10, ge=1, le=100),
        offset: int = Query(default=0, ge=0),
        user_id: str = Header(alias="X-User-Id"),
        p: BatchPipeline = Depends(get_pipeline),
    ) -> list[BatchReport]:
        return await p.get_batch_reports(user_id, session_id, limit=limit, offset=offset)

    @app.get("/sessions/{session_id}/batches/status")
    async def batch_status(
        session_id: str,
        user_id: str = Header(alias="X-User-Id"),
        p: BatchPipeline = Depends(get_pipeline),
    ) -> BatchStatus:
        return await p.get_batch_status(user_id, session_id)

    @app.get("/sessions/{session_id}/summary")
    async def session_summary(
        session_id: str,
        user_id: str = Header(alias="X-User-Id"),
        p: BatchPipeline = Depends(get_pipeline),
    ) -> SessionSummaryView:
        return await p.generate_session_summary(user_id, session_id)

    return app
