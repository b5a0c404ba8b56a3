"""FastAPI application factory.

``create_app`` wires settings and the shared ``Mailer`` into
``app.state`` so handlers receive them through dependencies and tests
can substitute their own.  Run with::

    uvicorn attendance_mailer.app:create_app --factory
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from attendance_mailer import __version__
from attendance_mailer.config import Settings
from attendance_mailer.reporting.sender import Mailer
from attendance_mailer.routes import error_response, router
from attendance_mailer.schemas import translate_validation_errors

logger = logging.getLogger(__name__)

MAX_BODY_BYTES = 1024 * 1024


class BodySizeLimitMiddleware:
    """Reject request bodies larger than *max_bytes* with a 413.

    The body is counted as it arrives, so chunked uploads without a
    ``Content-Length`` header are held to the same limit.  Accepted bodies
    are buffered and replayed to the application.
    """

    def __init__(self, app: ASGIApp, max_bytes: int = MAX_BODY_BYTES) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        if length and length.isdigit() and int(length) > self.max_bytes:
            await self._reject(scope, receive, send, length)
            return

        chunks: list[bytes] = []
        received = 0
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] != "http.request":
                # client went away before finishing the upload
                return
            chunk = message.get("body", b"")
            received += len(chunk)
            if received > self.max_bytes:
                await self._reject(scope, receive, send, f"more than {self.max_bytes}")
                return
            chunks.append(chunk)
            more_body = message.get("more_body", False)

        body = b"".join(chunks)
        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        await self.app(scope, replay, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send, size: str) -> None:
        logger.warning("Rejected %s body of %s bytes", scope.get("path"), size)
        response = error_response(413, "Payload too large")
        await response(scope, receive, send)


def create_app(settings: Settings | None = None, mailer: Mailer | None = None) -> FastAPI:
    """Build the API.

    Args:
        settings: Service settings; read from the environment when omitted.
        mailer: Dispatcher to share across requests; built from *settings*
            when omitted.
    """
    settings = settings or Settings.from_env()
    mailer = mailer or Mailer(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        os.makedirs(settings.reports_dir, exist_ok=True)
        logger.info("Mailer starting (DRY_RUN=%s)", "true" if mailer.dry_run else "false")
        await run_in_threadpool(mailer.verify)
        yield
        logger.info("Mailer shutting down...")
        await run_in_threadpool(mailer.close)

    app = FastAPI(title="Attendance Mailer API", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.mailer = mailer

    # CORS must stay outermost so 413 responses carry its headers
    app.add_middleware(BodySizeLimitMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        error = translate_validation_errors(exc.errors())
        logger.info("Rejected %s: %s", request.url.path, error.message)
        return error_response(400, error.message, error.errors)

    @app.get("/")
    async def root():
        return {"ok": True, "message": "Saamarthya Mailer API. Try /api/health"}

    app.include_router(router)
    return app
