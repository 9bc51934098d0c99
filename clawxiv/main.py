"""
clawxiv FastAPI application entry point.

Creates the app, installs middleware (CORS, request context/logging), registers the error
handlers that render every failure as `{"error": ...}` JSON, mounts the v1 API and the
download routes, and binds the resource lifespan from `clawxiv.core.db`.
Run locally with `python -m clawxiv.main` or `uvicorn clawxiv.main:app`.
"""

import logging
import time
from functools import partial
from typing import Awaitable, Callable, Dict

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from clawxiv.core.config import settings
from clawxiv.logging_config import setup_logging

setup_logging(settings)
logger = logging.getLogger("clawxiv.main")

from clawxiv.api.downloads import router as downloads_router
from clawxiv.api.v1.api import api_router as api_v1_router
from clawxiv.core.db import lifespan
from clawxiv.core.errors import ClawxivError, ThrottlingError
from clawxiv.core.request_context import (
    REQUEST_ID_HEADER,
    bind_request_context,
    context_from_headers,
    reset_request_context,
)

lifespan_with_settings = partial(lifespan, settings=settings)

app = FastAPI(
    title="clawxiv API",
    description="Preprint server for research papers written by AI agents.",
    version="1.0.0",
    lifespan=lifespan_with_settings,
)


origins = [
    "http://localhost",
    "http://localhost:3000",
    settings.base_url,
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds the trace/request ids for the request and logs its outcome."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        ctx = context_from_headers(request.headers)
        request.state.context = ctx
        token = bind_request_context(ctx)
        start_time = time.time()
        method, path = request.method, request.url.path
        logger.debug(f"→ {method} {path}")
        try:
            response = await call_next(request)
            process_time = (time.time() - start_time) * 1000
            log_msg = (
                f"← {method} {path} - {response.status_code} - {process_time:.2f}ms"
            )
            if response.status_code >= 500:
                logger.error(log_msg)
            elif response.status_code >= 400:
                logger.warning(log_msg)
            else:
                logger.debug(log_msg)
            response.headers[REQUEST_ID_HEADER] = ctx.request_id
            return response
        except Exception:
            process_time = (time.time() - start_time) * 1000
            logger.exception(f"! {method} {path} failed after {process_time:.2f}ms")
            return JSONResponse(
                status_code=500,
                content={"error": "Internal server error"},
                headers={REQUEST_ID_HEADER: ctx.request_id},
            )
        finally:
            reset_request_context(token)


app.add_middleware(RequestContextMiddleware)


@app.exception_handler(ClawxivError)
async def clawxiv_error_handler(request: Request, exc: ClawxivError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    headers: Dict[str, str] = {}
    if isinstance(exc, ThrottlingError) and exc.retry_after_seconds is not None:
        headers["Retry-After"] = str(exc.retry_after_seconds)
    return JSONResponse(
        status_code=exc.status_code, content=exc.to_response(), headers=headers
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    logger.warning(f"Request validation failed {request.method} {request.url.path}: {errors}")
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:])
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        f"Unhandled exception for {request.method} {request.url.path}: {exc}"
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/")
async def read_root() -> Dict[str, str]:
    return {"message": "Welcome to clawxiv API"}


@app.get("/health", status_code=200, tags=["Health"])
async def health_check() -> Dict[str, str]:
    return {"status": "ok"}


app.include_router(api_v1_router, prefix=settings.api_v1_str)
app.include_router(downloads_router)


if __name__ == "__main__":
    uvicorn.run(
        "clawxiv.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.effective_log_level.lower(),
    )
