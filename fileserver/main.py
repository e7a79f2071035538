from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, default_settings
from .routers import browse
from .services.fs_access import Filesystem, RealFilesystem

logger = logging.getLogger(__name__)

_SECURITY_HEADERS = {
    'Content-Security-Policy': "default-src 'self'; style-src 'self'",
    'X-Frame-Options': 'DENY',
    'X-Content-Type-Options': 'nosniff',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
}


def _apply_security_headers(response):
    for key, value in _SECURITY_HEADERS.items():
        response.headers[key] = value
    return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    config: Settings = app.state.settings
    if not config.serve_root.is_dir():
        raise RuntimeError(f'Refusing to start: root directory {config.serve_root} is missing or not a directory')
    logger.info('Listening on port %d, root %s', config.app_port, config.serve_root)
    yield


async def security_middleware(request: Request, call_next):
    response = await call_next(request)
    return _apply_security_headers(response)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    headers = getattr(exc, 'headers', None)
    return PlainTextResponse(f'{exc.status_code} {exc.detail}\n', status_code=exc.status_code, headers=headers)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error('Unhandled error while serving %s', request.url.path, exc_info=exc)
    return PlainTextResponse('500 Internal Server Error\n', status_code=500)


def create_app(config: Settings | None = None, filesystem: Filesystem | None = None) -> FastAPI:
    """Build the app; ``uvicorn --factory fileserver.main:create_app`` reads settings from the environment."""
    config = config or default_settings()
    # no docs routes: every path belongs to the served tree
    app = FastAPI(title=config.app_name, lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)
    app.state.settings = config
    app.state.filesystem = filesystem or RealFilesystem()

    app.middleware('http')(security_middleware)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
    app.include_router(browse.router)
    return app
