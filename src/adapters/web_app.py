"""HTTP shell (FastAPI).

`GET /<host-or-url>?size=<px>` answers with the cached PNG closest to `size`,
the default icon, or an empty body. Every answer is a 200.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response

from adapters.http_client import build_async_client
from adapters.imagemagick import ImageMagickConverter
from core.config import AppSettings
from core.services.favicon_service import FaviconService

logger = logging.getLogger(__name__)


def create_app(
    settings: AppSettings | None = None,
    service: FaviconService | None = None,
) -> FastAPI:
    """Build the ASGI app; `service` is injected as-is when given (tests)."""

    settings = settings or AppSettings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if service is not None:
            app.state.service = service
            yield
            return

        async with build_async_client(settings) as client:
            app.state.service = FaviconService.bootstrap(
                settings,
                client=client,
                converter=ImageMagickConverter(settings.convert_command),
            )
            logger.info("favicon-d2 serving from %s", settings.cache_dir)
            yield
        logger.info("favicon-d2 shutting down")

    app = FastAPI(
        title="favicon-d2",
        description="Resolves, converts and caches the favicon of any host.",
        lifespan=lifespan,
    )

    @app.get("/healthz", response_class=PlainTextResponse)
    async def healthz() -> str:
        return "ok"

    @app.get("/{target:path}")
    async def favicon(target: str, request: Request) -> Response:
        size = request.query_params.get("size")
        result = await request.app.state.service.handle(target, size)
        return Response(content=result.body, media_type=result.media_type)

    return app
