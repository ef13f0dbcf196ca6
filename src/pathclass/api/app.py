"""FastAPI application factory for the pathway assignment API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional

from fastapi import FastAPI, Request, Response, status

from pathclass.config import ConfigManager, PathclassConfig
from pathclass.logging_config import configure_logging
from pathclass.pipeline import ClassificationPipeline

from .exception_handlers import error_response, setup_exception_handlers
from .routes import router

LOGGER = logging.getLogger(__name__)

API_PREFIX = "/api"


def create_app(
    pipeline: Optional[ClassificationPipeline] = None,
    *,
    config: Optional[PathclassConfig] = None,
) -> FastAPI:
    """Create the API application.

    Args:
        pipeline: Pipeline serving requests. When omitted one is built from
            ``config`` on the first request.
        config: Resolved configuration; loaded through :class:`ConfigManager` when omitted.

    Returns:
        FastAPI: Configured application instance.
    """
    settings = config or ConfigManager().load()
    configure_logging(settings.logging)
    max_body_bytes = settings.server.max_body_mb * 1024 * 1024
    holder: dict[str, ClassificationPipeline] = {}
    if pipeline is not None:
        holder["pipeline"] = pipeline

    def pipeline_provider() -> ClassificationPipeline:
        if "pipeline" not in holder:
            holder["pipeline"] = ClassificationPipeline.from_config(settings)
        return holder["pipeline"]

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        current = holder.get("pipeline")
        if current is not None:
            await current.aclose()

    app = FastAPI(title="pathclass API", lifespan=lifespan)
    app.state.pipeline_provider = pipeline_provider
    app.state.background_runs = set()

    @app.middleware("http")
    async def limit_body_size(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        declared = request.headers.get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > max_body_bytes:
            return error_response(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, "Payload Too Large")
        return await call_next(request)

    setup_exception_handlers(app)
    app.include_router(router, prefix=API_PREFIX)
    return app


__all__ = ["API_PREFIX", "create_app"]
