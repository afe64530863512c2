"""FastAPI application factory with lifespan context manager."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import settings
from app.db.engine import dispose_engine, init_engine
from app.exceptions import ActionError
from app.logging_config import configure_logging
from app.middleware.api_key import ApiKeyMiddleware
from app.routers import feeds, health, push


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Configure logging, open the database pool and pick the webhook dispatcher."""
    configure_logging(
        json_logs=not settings.debug, log_level=settings.log_level, service=settings.app_name
    )
    await init_engine(settings.database_url, echo=settings.debug)

    from app.dependencies import init_production_deps

    init_production_deps(
        gcp_project=settings.gcp_project,
        gcp_location=settings.gcp_location,
        cloud_tasks_queue=settings.cloud_tasks_queue,
        webhook_delivery_url=settings.webhook_delivery_url,
    )

    yield
    await dispose_engine()


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.add_middleware(ApiKeyMiddleware)


@app.exception_handler(ActionError)
async def action_error_handler(request: Request, exc: ActionError) -> JSONResponse:
    """Report a failed push with the operation that broke it."""
    logger = structlog.get_logger()
    logger.error(
        "action_failed",
        path=request.url.path,
        operation=exc.operation,
        error=str(exc),
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return a JSON 500 response for any unhandled exception."""
    logger = structlog.get_logger()
    logger.exception("unhandled_exception", path=request.url.path, method=request.method)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(health.router)
app.include_router(push.router)
app.include_router(feeds.router)
