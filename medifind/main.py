from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from medifind.core.config import Settings, get_settings
from medifind.core.logging import configure_logging
from medifind.db.session import dispose_engines, init_models
from medifind.middleware import (
    RateLimitExceeded,
    SlowAPIMiddleware,
    _rate_limit_exceeded_handler,
    get_limiter,
)
from medifind.routes import health, locations, search, stores

configure_logging()
logger = logging.getLogger(__name__)

settings = get_settings()

_DEV_ORIGINS = [
    "http://localhost:5173",  # Vite dev server
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


def _allowed_origins(config: Settings) -> list[str]:
    if config.environment == "development":
        return list(_DEV_ORIGINS)

    origins = [origin.strip() for origin in config.cors_origins.split(",") if origin.strip()]
    # Member tokens travel as credentials, which browsers refuse with a wildcard
    if "*" in origins:
        logger.error("Refusing wildcard CORS origins outside development (environment=%s)", config.environment)
        raise ValueError("CORS_ORIGINS must list explicit origins outside development")
    return origins


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    if settings.create_schema_on_startup:
        await init_models()
    logger.info("%s started (environment=%s)", settings.app_name, settings.environment)
    yield
    await dispose_engines()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.state.limiter = get_limiter()
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

for router_module in (health, search, stores, locations):
    app.include_router(router_module.router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(settings),
    allow_credentials=True,
    allow_methods=["GET", "PUT", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["x-request-id"] = request_id
    return response


@app.exception_handler(ValidationError)
async def pydantic_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    logger.info("Validation failed on %s: %d error(s)", request.url.path, exc.error_count())
    return JSONResponse(
        status_code=422,
        content={"detail": exc.errors(include_context=False, include_url=False)},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


__all__ = ["app"]
