# main.py
import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import IntegrityError

from app.routers import (
    product_router,
    inventory_location_router,
    inventory_router,
    reorder_alert_router,
    analytics_router,
    inventory_events_router,
)

from app.core.config import APP_ENV, ENABLE_SCHEDULER, REORDER_SCAN_INTERVAL_MINUTES
from app.core.db import init_models, dispose_engine
from app.core.scheduler import scheduler
from app.core.exceptions import AppException
from app.core.logging import setup_logging
from app.middleware.request_logging import request_logging_middleware
from app.core.error_handlers import (
    app_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    integrity_error_handler,
    unhandled_exception_handler,
)

APP_NAME = "Multi-Location Inventory API"
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]

setup_logging()
logger = logging.getLogger(__name__)

EXCEPTION_HANDLERS = {
    AppException: app_exception_handler,
    RequestValidationError: validation_exception_handler,
    StarletteHTTPException: http_exception_handler,
    IntegrityError: integrity_error_handler,
    Exception: unhandled_exception_handler,
}

ROUTERS = (
    product_router,
    inventory_location_router,
    inventory_router,
    reorder_alert_router,
    analytics_router,
    inventory_events_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting inventory service", extra={"env": APP_ENV})

    if APP_ENV == "development":
        await init_models()

    if ENABLE_SCHEDULER:
        scheduler.start()
        logger.info(
            "Inventory scheduler started",
            extra={"reorder_scan_minutes": REORDER_SCAN_INTERVAL_MINUTES},
        )

    try:
        yield
    finally:
        logger.info("Stopping inventory service")
        if scheduler.running:
            scheduler.shutdown(wait=False)
        await dispose_engine()


app = FastAPI(
    title=APP_NAME,
    description="Stock balances, transfers, batches, serials and reorder alerts across locations",
    version=APP_VERSION,
    docs_url="/docs" if APP_ENV != "production" else None,
    redoc_url=None,
    lifespan=lifespan,
)

for exc_class, handler in EXCEPTION_HANDLERS.items():
    app.add_exception_handler(exc_class, handler)

app.middleware("http")(request_logging_middleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


@app.get("/", tags=["Health"])
async def health_check():
    return {
        "status": "ok",
        "service": "inventory-api",
        "environment": APP_ENV,
        "version": APP_VERSION,
        "scheduler": scheduler.running,
    }


for router in ROUTERS:
    app.include_router(router)
