from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException

from restock.core.cors import apply_cors, cors_middleware
from restock.core.errors import ConfigError, StoreError
from restock.core.log import log_event, log_exception
from restock.core.settings import S, require
from restock.metrics import metrics_endpoint, metrics_middleware, set_app_info
from restock.routers.grocery import router as grocery_router
from restock.routers.misc import router as misc_router
from restock.routers.pantry import router as pantry_router
from restock.services.cache import make_cache

GENERIC_ERROR = "Internal server error"


async def _http_error(request: Request, exc: HTTPException):
    log_event("request_rejected", level="warning", path=request.url.path, status=exc.status_code, detail=exc.detail)
    return apply_cors(PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers))


async def _validation_error(request: Request, exc: RequestValidationError):
    log_event("request_invalid", level="warning", path=request.url.path, errors=exc.errors())
    return apply_cors(PlainTextResponse("Invalid request payload", status_code=400))


async def _server_error(request: Request, exc: Exception):
    log_exception("request_failed", exc, method=request.method, path=request.url.path)
    return apply_cors(PlainTextResponse(GENERIC_ERROR, status_code=500))


def _lifespan(consumer_factory):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        require("pantry_table")
        require("grocery_table")
        consumer = None
        if consumer_factory is not None:
            consumer = consumer_factory()
            consumer.start()
        try:
            yield
        finally:
            if consumer is not None:
                consumer.stop()

    return lifespan


def _default_consumer():
    from restock.pipeline.consumer import StreamConsumer
    from restock.pipeline.stream_handler import get_processor

    return StreamConsumer(get_processor())


def create_app(grocery_cache: Optional[Any] = None, consumer_factory=None) -> FastAPI:
    if consumer_factory is None and S.enable_stream_consumer:
        consumer_factory = _default_consumer

    app = FastAPI(title="Grocery Restock", version="0.1.0", lifespan=_lifespan(consumer_factory))
    app.state.grocery_cache = grocery_cache if grocery_cache is not None else make_cache(S.grocery_cache_ttl_seconds)

    app.add_exception_handler(HTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(StoreError, _server_error)
    app.add_exception_handler(ConfigError, _server_error)
    app.add_exception_handler(Exception, _server_error)

    if S.metrics_enabled:
        app.middleware("http")(metrics_middleware)
        set_app_info(app.title, app.version)
        app.get("/metrics")(metrics_endpoint)
    # Added last so it wraps everything, including metrics.
    app.middleware("http")(cors_middleware)

    app.include_router(misc_router)
    app.include_router(pantry_router)
    app.include_router(grocery_router)

    return app


app = create_app()
