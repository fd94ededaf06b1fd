from datetime import datetime
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.routers import academic
from app.services.temp_files import TempFileManager

# Import logging and middleware
from app.utils.logging_config import configure_for_environment, get_logger
from app.middleware.error_handlers import (
    ExceptionHandlerMiddleware,
    RequestLoggingMiddleware,
    PerformanceMiddleware,
    request_validation_exception_handler,
)

settings = get_settings()

# Configure logging first
configure_for_environment(settings.environment, settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager"""
    logger.info("Academic Records API starting up...")

    temp_files = TempFileManager(settings.upload_dir, settings.temp_file_retention_seconds)
    temp_files.ensure_dir()
    removed = await run_in_threadpool(temp_files.cleanup_stale)
    logger.info(f"Upload directory ready at {settings.upload_dir} ({removed} stale files removed)")

    if not settings.cloudinary.is_configured:
        logger.warning("Cloudinary credentials are missing - uploads will fail until they are set")

    try:
        from app.services.db import get_academic_collection, init_indexes
        await init_indexes(get_academic_collection(settings))
        logger.info("Database indexes initialized successfully")
    except Exception as e:
        logger.warning(f"Database index initialization had issues: {e}")
        logger.info("Application will continue - the one-record-per-user index may be missing")

    logger.info("Academic Records API startup completed")

    yield

    logger.info("Academic Records API shutting down...")


app = FastAPI(title="Academic Records API", version="1.0.0", lifespan=lifespan)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

# Add middleware in order (LIFO - Last In, First Out)
# Exception handler should be the outermost middleware
app.add_middleware(PerformanceMiddleware, slow_request_threshold=2.0)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(ExceptionHandlerMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-User-Id"],
    max_age=86400,
)


@app.get("/")
@app.head("/")
async def root():
    """Root endpoint - handles both GET and HEAD requests for health checks"""
    logger.debug("Root endpoint accessed")
    return {"message": "Welcome to the Academic Records API", "version": "1.0.0", "status": "ok"}


@app.get("/health")
@app.head("/health")
async def health_check():
    """Health check endpoint - handles both GET and HEAD requests"""
    return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}


app.include_router(academic.router, prefix="/api/academic", tags=["academic"])

logger.info("Academic Records API initialized successfully")
