from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cinema_admin.api.rate_limit import RateLimitMiddleware
from cinema_admin.api.routes import router
from cinema_admin.core.catalog import Catalog, load_catalog
from cinema_admin.core.settings import configured_data_dir, env_csv

_LOG = logging.getLogger("cinema_admin.api")


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part not in ("query", "body", "path")]
    msg = first.get("msg", "Invalid value")
    return f"{loc[-1]}: {msg}" if loc else msg


def create_app(*, catalog: Catalog | None = None) -> FastAPI:
    app = FastAPI(title="Cinema Admin Tables", version="0.1.0")

    app.state.catalog = catalog if catalog is not None else load_catalog(data_dir=configured_data_dir())

    # CORS is opt-in, e.g.
    #   CINEMA_ADMIN_CORS_ORIGINS=https://admin.example.com,http://localhost:5173
    cors_origins = env_csv("CORS_ORIGINS")
    if cors_origins:
        # Allow '*' for quick demos; do not allow credentials with wildcard.
        allow_all = "*" in cors_origins
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"] if allow_all else cors_origins,
            allow_credentials=False,
            allow_methods=["*"] if allow_all else ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )

    app.add_middleware(RateLimitMiddleware)

    # Errors use the same {success, message} envelope as successful responses.
    @app.exception_handler(HTTPException)
    async def _http_exception_handler(_request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": str(exc.detail), "detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    # Malformed query or body input is a client error in the same envelope.
    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(_request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"success": False, "message": _validation_message(exc)})

    # Ensure unexpected errors don't leak internals.
    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        _LOG.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Internal server error", "detail": "Internal server error"},
        )

    app.include_router(router)
    return app


app = create_app()
