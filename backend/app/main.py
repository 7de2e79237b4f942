from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from structlog.contextvars import bind_contextvars, reset_contextvars

from backend.app.api.routes import build_router
from backend.app.dependencies import get_payload_router, get_settings, get_telemetry
from backend.app.logging_config import configure_application_logging

LOGGER = logging.getLogger("movie_service.app")


def health_check() -> dict[str, str]:
    return {"status": "ok"}


@asynccontextmanager
async def app_lifespan(_: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_application_logging(settings)
    # Building the router seeds the movie table before the first request.
    payload_router = get_payload_router()
    LOGGER.info(
        "soap endpoints ready path=%s roots=%s",
        settings.soap_endpoint_path,
        ",".join(str(root) for root in payload_router.roots()),
    )
    yield


def create_app() -> FastAPI:
    app = FastAPI(title="Movie Service", version="0.1.0", lifespan=app_lifespan)
    settings = get_settings()

    async def request_context_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        telemetry = get_telemetry()
        incoming_request_id = request.headers.get("X-Request-ID")
        request_id = (
            incoming_request_id.strip()
            if isinstance(incoming_request_id, str) and incoming_request_id.strip()
            else str(uuid4())
        )
        context_tokens = bind_contextvars(
            http_request_id=request_id,
            http_method=request.method,
            http_path=request.url.path,
        )
        try:
            with telemetry.span(
                "http.request",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
            ) as finish_attributes:
                response = await call_next(request)
                response.headers["X-Request-ID"] = request_id
                finish_attributes["status_code"] = response.status_code
            return response
        finally:
            reset_contextvars(**context_tokens)

    app.middleware("http")(request_context_middleware)
    app.include_router(build_router(settings.soap_endpoint_path))
    app.add_api_route(
        "/health",
        health_check,
        methods=["GET"],
        tags=["system"],
        operation_id="health_check",
    )

    return app


app = create_app()
