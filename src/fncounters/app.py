# SPDX-FileCopyrightText: 2026 The fncounters Authors
# SPDX-License-Identifier: Apache-2.0

"""Starlette application exposing the ``handleHttpReq`` handler.

Telemetry starts from the ASGI lifespan, so the server accepts no requests
until the metrics identity is resolved and the counters exist.  A startup
failure raises ``SystemExit(1)`` out of the lifespan and the server exits.

Example::

    uvicorn --factory fncounters.app:create_app
"""

from __future__ import annotations

import contextlib
import logging
from typing import AsyncIterator, Optional

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.routing import Route

from fncounters.sdk.bootstrap import Telemetry, start_telemetry
from fncounters.sdk.config import CountersConfig
from fncounters.sdk.logging import configure_logging, install_diagnostic_bridge

logger = logging.getLogger(__name__)

HANDLER_NAME = "handleHttpReq"
HTTP_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


async def handle_http_req(request: Request) -> PlainTextResponse:
    """Count the request and answer ``OK``."""
    logger.info("handling HTTP request")
    telemetry: Optional[Telemetry] = getattr(request.app.state, "telemetry", None)
    if telemetry is None:
        logger.warning("Metrics not initialized; request not counted")
    else:
        telemetry.request_hook()
    return PlainTextResponse("OK")


def create_app(config: Optional[CountersConfig] = None, **telemetry_kwargs) -> Starlette:
    """Build the application.

    Args:
        config: Configuration; loaded from file or environment when omitted.
        **telemetry_kwargs: Passed to :func:`start_telemetry` (``detector``,
            ``exporter``, ``on_fatal``).
    """
    cfg = config or CountersConfig.from_file_or_env()
    configure_logging(cfg.log_level, cfg.project_id)
    install_diagnostic_bridge()

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        telemetry = await start_telemetry(cfg, **telemetry_kwargs)
        app.state.telemetry = telemetry
        try:
            yield
        finally:
            if telemetry is not None:
                await telemetry.background.stop()

    app = Starlette(
        routes=[Route("/", handle_http_req, methods=HTTP_METHODS, name=HANDLER_NAME)],
        lifespan=lifespan,
    )
    app.state.telemetry = None
    logger.info("HTTP handler ready.")
    return app
