"""FastAPI application factory."""
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from assemblyhomology import __version__
from assemblyhomology.api.schemas.root import ErrorMessage
from assemblyhomology.build import AppContext, build_context
from assemblyhomology.config import Settings
from assemblyhomology.domain.exceptions import (
    AssemblyHomologyError,
    ComparatorTimeoutError,
    ErrorType,
    NoDataError,
)
from assemblyhomology.logging import configure, get_call_id, new_call_id, set_call_id

log = logging.getLogger(__name__)

X_FORWARDED_FOR = "X-Forwarded-For"
X_REAL_IP = "X-Real-IP"

_UNAUTHENTICATED = (ErrorType.AUTHENTICATION_FAILED, ErrorType.NO_TOKEN)


def error_response(
    status: int,
    message: str | None,
    error_type: ErrorType | None = None,
) -> JSONResponse:
    em = ErrorMessage(
        httpcode=status,
        httpstatus=HTTPStatus(status).phrase,
        appcode=error_type.error_code if error_type else None,
        apperror=error_type.error if error_type else None,
        message=message,
        callid=get_call_id(),
        time=int(time.time() * 1000),
    )
    return JSONResponse(status_code=status, content={"error": em.model_dump(exclude_none=True)})


def status_for(exc: AssemblyHomologyError) -> int:
    if isinstance(exc, NoDataError):
        return 404
    if exc.error_type in _UNAUTHENTICATED:
        return 401
    return 400


def client_ip(request: Request, trust_headers: bool) -> str | None:
    if trust_headers:
        xff = request.headers.get(X_FORWARDED_FOR)
        if xff and xff.strip():
            return xff.split(",")[0].strip()
        real_ip = request.headers.get(X_REAL_IP)
        if real_ip and real_ip.strip():
            return real_ip.strip()
    return request.client.host if request.client else None


def create_app(context: AppContext | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the app.

    With a ``context`` the caller owns it; otherwise one is built from
    ``settings`` (or the environment) at startup and closed at shutdown.
    """
    if settings is None:
        if context is not None:
            settings = context.settings
        else:
            from assemblyhomology.config import settings
    configure(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if getattr(app.state, "context", None) is None:
            owned = build_context(settings)
            app.state.context = owned
        try:
            yield
        finally:
            if owned is not None:
                owned.close()
                app.state.context = None

    app = FastAPI(
        title="Assembly Homology API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.context = context

    from assemblyhomology.api.routers.root import router as root_router
    from assemblyhomology.api.routers.namespaces import router as namespaces_router

    app.include_router(root_router)
    app.include_router(namespaces_router)

    trust_ip_headers = not settings.DONT_TRUST_X_IP_HEADERS

    @app.middleware("http")
    async def _log_calls(request: Request, call_next):
        new_call_id()
        ip = client_ip(request, trust_ip_headers)
        try:
            response = await call_next(request)
        except Exception as exc:
            log.exception("Unhandled error for %s %s", request.method, request.url.path)
            response = error_response(500, str(exc))
        log.info("%s %s %s %s", request.method, request.url.path, response.status_code, ip)
        set_call_id(None)
        return response

    @app.exception_handler(AssemblyHomologyError)
    def _app_error(request: Request, exc: AssemblyHomologyError) -> JSONResponse:
        log.warning("%s", exc)
        return error_response(status_for(exc), str(exc), exc.error_type)

    @app.exception_handler(ComparatorTimeoutError)
    def _timeout(request: Request, exc: ComparatorTimeoutError) -> JSONResponse:
        log.error("%s", exc)
        return error_response(504, str(exc))

    @app.exception_handler(StarletteHTTPException)
    def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(400, str(exc))

    return app
