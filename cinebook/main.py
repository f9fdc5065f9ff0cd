"""
Main FastAPI application
"""

from contextlib import asynccontextmanager
import asyncio
import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from cinebook.config import settings
from cinebook.core.database import init_db, close_db
from cinebook.core.exceptions import BookingEngineError, LockContentionError
from cinebook.core.logging import setup_logging
from cinebook.core.seeding import seed_if_empty
from cinebook.api.v1.api import api_router
from cinebook.schemas.response import ErrorDetail, ErrorResponse, HealthResponse
from cinebook.services.booking_service import booking_service

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    await init_db()
    logger.info("Database connection established")

    if settings.SEED_DEMO_DATA:
        await seed_if_empty()

    reclaimer_task = None
    if settings.RECLAIM_ENABLED:
        reclaimer_task = asyncio.create_task(
            booking_service.reclaimer.run_periodically(settings.RECLAIM_INTERVAL_SECONDS)
        )

    yield

    logger.info("Shutting down application")

    if reclaimer_task is not None:
        reclaimer_task.cancel()
        try:
            await reclaimer_task
        except asyncio.CancelledError:
            pass
        logger.info("Expiry reclaimer stopped")

    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description="Seat reservation and booking lifecycle engine",
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def track_requests(request: Request, call_next):
    """
    Add request ID and timing headers
    """
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    start_time = time.perf_counter()

    response = await call_next(request)

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = str(time.perf_counter() - start_time)
    return response


@app.exception_handler(BookingEngineError)
async def booking_engine_error_handler(request: Request, exc: BookingEngineError):
    body = ErrorResponse(error=ErrorDetail(code=exc.code, message=exc.message, details=exc.details))
    headers = {}
    if isinstance(exc, LockContentionError):
        headers["Retry-After"] = str(exc.details.get("retry_after", settings.CONTENTION_RETRY_AFTER_SECONDS))
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(body),
        headers=headers
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    body = ErrorResponse(
        error=ErrorDetail(
            code="VALIDATION_ERROR",
            message="Request validation failed",
            details={"errors": jsonable_encoder(exc.errors())}
        )
    )
    return JSONResponse(
        status_code=422,
        content=jsonable_encoder(body)
    )


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc):
    logger.error(f"Internal server error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An internal server error occurred"
            }
        }
    )


@app.get("/health/live", response_model=HealthResponse)
async def liveness():
    """Kubernetes liveness check"""
    return HealthResponse(status="alive")


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.APP_ENV,
        "api_docs": "/docs" if settings.DEBUG else None
    }


app.include_router(api_router, prefix=settings.API_PREFIX)

if settings.PROMETHEUS_ENABLED:
    app.mount("/metrics", make_asgi_app())


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "cinebook.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
