from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from finance_tracker.core.config import settings
from finance_tracker.core.errors import DuplicateRecordError, StoreError
from finance_tracker.core.logging import configure_logging
from finance_tracker.db.base import RecordStore
from finance_tracker.db.dynamo import DynamoStore
from finance_tracker.routers import auth, dashboard, expenses, health, salary

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    # Startup: open the store unless one was injected
    owns_store = app.state.store is None
    if owns_store:
        logger.info("Opening record store...")
        app.state.store = DynamoStore.from_settings(settings)
    yield
    # Shutdown: release the store we opened
    if owns_store:
        logger.info("Closing record store...")
        app.state.store.close()
        app.state.store = None


async def duplicate_record_handler(request: Request, exc: DuplicateRecordError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


async def store_error_handler(request: Request, exc: StoreError):
    logger.error(f"Store error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Record store unavailable"})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unexpected error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(store: Optional[RecordStore] = None) -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )
    app.state.store = store

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
        max_age=3600,
    )

    app.add_exception_handler(DuplicateRecordError, duplicate_record_handler)
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Root endpoint
    @app.get("/")
    def root():
        return {"message": f"Welcome to {settings.PROJECT_NAME} API"}

    # Register routers
    app.include_router(health.router, prefix=f"{settings.API_PREFIX}", tags=["Health"])  # /api/health
    app.include_router(auth.router, prefix=f"{settings.API_PREFIX}/auth", tags=["Auth"])
    app.include_router(expenses.router, prefix=f"{settings.API_PREFIX}/expenses", tags=["Expenses"])
    app.include_router(salary.router, prefix=f"{settings.API_PREFIX}/salary", tags=["Salary"])
    app.include_router(dashboard.router, prefix=f"{settings.API_PREFIX}/dashboard", tags=["Dashboard"])
    return app


app = create_app()
