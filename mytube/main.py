from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from structlog.contextvars import bind_contextvars, reset_contextvars

from mytube.api.routes import router
from mytube.dependencies import get_database, get_settings, get_telemetry
from mytube.logging_config import configure_application_logging

REQUEST_ID_HEADER = "X-Request-ID"
_UNTRACKED_PATHS = frozenset({"/health"})


def health_check() -> dict[str, str]:
    return {"status": "ok"}


@asynccontextmanager
async def app_lifespan(_: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_application_logging(settings, component="server")
    get_database()
    yield


def _resolve_request_id(request: Request) -> str:
    incoming = request.headers.get(REQUEST_ID_HEADER, "").strip()
    return incoming or uuid4().hex


def _route_area(path: str) -> str:
    # /api/youtube/search -> youtube, /api/user/... -> user
    parts = [part for part in path.split("/") if part]
    if len(parts) >= 2 and parts[0] == "api":
        return parts[1]
    return "system"


async def request_context_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    request_id = _resolve_request_id(request)
    path = request.url.path
    context_tokens = bind_contextvars(
        http_request_id=request_id,
        http_method=request.method,
        http_path=path,
    )
    try:
        if path in _UNTRACKED_PATHS:
            response = await call_next(request)
        else:
            with get_telemetry().span(
                "http.request",
                request_id=request_id,
                method=request.method,
                path=path,
                area=_route_area(path),
                signed_in="authorization" in request.headers,
            ) as outcome:
                response = await call_next(request)
                outcome["status_code"] = response.status_code
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
    finally:
        reset_contextvars(**context_tokens)


def create_app() -> FastAPI:
    app = FastAPI(title="MyTube API", version="0.1.0", lifespan=app_lifespan)
    app.middleware("http")(request_context_middleware)
    app.include_router(router)
    app.add_api_route(
        "/health",
        health_check,
        methods=["GET"],
        tags=["system"],
        operation_id="health_check",
    )
    return app


app = create_app()
