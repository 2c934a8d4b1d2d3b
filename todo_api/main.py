import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import config
from .routers import tasks
from .scheduler import TaskScheduler
from .store import StoreError, TaskStore

logger = logging.getLogger(__name__)


def _describe_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(item) for item in error.get("loc", ()) if item not in ("body", "query", "path"))
        msg = error.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "Invalid request"


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": _describe_errors(exc)},
    )


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("Store failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def create_app(store: Optional[TaskStore] = None, *, scheduler_enabled: Optional[bool] = None) -> FastAPI:
    """Build the API around a single store handle.

    The scheduler shares the same store and runs while the app is serving.
    """
    if store is None:
        store = TaskStore(config.DATABASE_URL)
    if scheduler_enabled is None:
        scheduler_enabled = config.SCHEDULER_ENABLED

    scheduler = TaskScheduler(
        store,
        reminder_cron=config.REMINDER_CRON,
        recurrence_cron=config.RECURRENCE_CRON,
        reminder_window=timedelta(minutes=config.REMINDER_WINDOW_MINUTES),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.create_tables()
        if scheduler_enabled:
            await scheduler.start()
        try:
            yield
        finally:
            await scheduler.stop()
            store.dispose()

    app = FastAPI(
        title="Todo API",
        description="Personal task tracker with reminders and recurring tasks",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StoreError, store_error_handler)

    app.state.store = store
    app.state.scheduler = scheduler

    app.include_router(tasks.router, tags=["tasks"])

    @app.get("/")
    def read_root():
        return {"message": "Todo API"}

    @app.get("/health")
    def health_check():
        return {"status": "healthy"}

    return app
