"""
Global middleware and error rendering.
"""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from auth.errors import AuthFlowError

logger = logging.getLogger(__name__)


def register_middleware(app: FastAPI) -> None:
    """Attach app-level middleware and the ``{ok: false}`` error handler."""

    @app.middleware("http")
    async def request_timer(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        # Path only: query strings on the callback carry the auth code.
        logger.debug(
            "%s %s → %s — %.3fs",
            request.method, request.url.path, response.status_code, elapsed,
        )
        return response

    @app.exception_handler(AuthFlowError)
    async def auth_flow_error(request: Request, exc: AuthFlowError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"ok": False, "error": exc.message},
        )
